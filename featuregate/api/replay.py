"""
Request body replay for ASGI wrappers.

A context resolver may read the request body before the downstream app
runs. The body is then gone from the server's receive channel, so the
downstream app is handed a receive callable that replays it first.
"""

from starlette.requests import Request
from starlette.types import Message, Receive


def cached_body_receive(request: Request, receive: Receive) -> Receive:
    """
    Get the receive callable for the app downstream of `request`.

    Returns `receive` unchanged when the body was never read.
    """
    body: bytes | None = getattr(request, "_body", None)
    if body is None:
        return receive

    replayed = False

    async def replay() -> Message:
        nonlocal replayed
        if replayed:
            return await receive()
        replayed = True
        return {"type": "http.request", "body": body, "more_body": False}

    return replay
