"""
Feature restriction for routed endpoints.

Wraps the ASGI app of a route (Route, APIRoute or Mount), so the
restriction runs after routing and before the endpoint itself.

Usage:
    from featuregate import with_feature_restriction

    routes = [
        with_feature_restriction(Route("/beta", beta), "beta"),
        with_feature_restriction(Mount("/v2", app=v2_app), "api_v2"),
    ]

    # FastAPI
    @app.get("/beta")
    async def beta(): ...

    with_feature_restriction(app.router.routes[-1], "beta")
"""

from typing import Any

from fastapi.encoders import jsonable_encoder
from starlette.requests import HTTPConnection, Request
from starlette.responses import JSONResponse, Response
from starlette.routing import BaseRoute
from starlette.types import ASGIApp, Receive, Scope, Send

from featuregate.api.replay import cached_body_receive
from featuregate.core.enforcement import RestrictionEnforcer, get_feature, is_allowed
from featuregate.core.features.interfaces import Surface

from .responses import json_denial

# Policy violation
WEBSOCKET_DENIED_CODE = 1008

_PROCEEDED = object()


class FeatureRestrictedEndpoint:
    """ASGI app running a restriction in front of an endpoint."""

    def __init__(self, app: ASGIApp, enforcer: RestrictionEnforcer):
        self.app = app
        self.enforcer = enforcer

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "websocket":
            await self._call_websocket(scope, receive, send)
            return

        request = Request(scope, receive)

        async def proceed() -> Any:
            await self.app(scope, cached_body_receive(request, receive), send)
            return _PROCEEDED

        result = await self.enforcer.enforce(request, proceed, json_denial)
        if result is _PROCEEDED:
            return

        if not isinstance(result, Response):
            result = JSONResponse(jsonable_encoder(result))
        await result(scope, receive, send)

    async def _call_websocket(self, scope: Scope, receive: Receive, send: Send) -> None:
        # Denial handlers produce HTTP results; a denied websocket is closed
        connection = HTTPConnection(scope, receive)
        feature = await get_feature(connection, self.enforcer.feature_key)

        if is_allowed(feature, self.enforcer.requires_enabled):
            await self.app(scope, receive, send)
        else:
            await send({"type": "websocket.close", "code": WEBSOCKET_DENIED_CODE})

    def __repr__(self) -> str:
        return f"<FeatureRestrictedEndpoint {self.enforcer!r}>"


def with_feature_restriction(
    route: BaseRoute,
    feature_key: str,
    enabled: bool = True,
) -> BaseRoute:
    """
    Restrict a route to a feature state.

    Args:
        route: Route whose endpoint is restricted
        feature_key: The feature flag key to check
        enabled: Required feature state (False restricts to "disabled")

    Returns:
        The same route, for use inline in a route list

    Denied requests get the endpoint handler registered with
    `use_restricted_feature_handler`, or a JSON 404 by default.
    Restrictions stack; the last one added runs first.
    """
    if route is None:
        raise ValueError("route is required")

    enforcer = RestrictionEnforcer(feature_key, enabled, surface=Surface.ENDPOINT)

    inner = getattr(route, "app", None)
    if inner is None:
        raise TypeError(f"{type(route).__name__} has no endpoint app to restrict")

    route.app = FeatureRestrictedEndpoint(inner, enforcer)
    return route
