"""
Pytest fixtures for testing.

Provides:
- In-memory feature client
- Starlette / FastAPI apps with the feature gate registered
- HTTP client helper over ASGI
- Recording middleware for ordering assertions
"""

from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from starlette.requests import Request
from starlette.types import ASGIApp, Receive, Scope, Send

from featuregate import (
    Context,
    FeatureGateSettings,
    MemoryFeatureClient,
    TrackingStrategy,
)


@pytest.fixture
def feature_client() -> MemoryFeatureClient:
    """Feature client with `beta` enabled and `legacy` disabled."""
    return MemoryFeatureClient({"beta": True, "legacy": False})


@pytest.fixture
def settings() -> FeatureGateSettings:
    """Settings independent of the environment."""
    return FeatureGateSettings(
        _env_file=None,
        deny_status_code=404,
        deny_detail="Not Found",
        log_denials=True,
    )


@pytest.fixture
def make_client() -> Callable[[ASGIApp], AsyncClient]:
    """Build an HTTP client bound to an ASGI app."""

    def factory(app: ASGIApp) -> AsyncClient:
        return AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        )

    return factory


@pytest_asyncio.fixture
async def http_factory(make_client) -> AsyncGenerator[Callable[[ASGIApp], AsyncClient], None]:
    """Like make_client, closing every client after the test."""
    clients: list[AsyncClient] = []

    def factory(app: ASGIApp) -> AsyncClient:
        client = make_client(app)
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.aclose()


# ============ Helpers ============


class RecordingMiddleware:
    """Appends its name to a shared log for every HTTP request."""

    def __init__(self, app: ASGIApp, *, name: str, log: list[str]):
        self.app = app
        self.name = name
        self.log = log

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            self.log.append(self.name)
        await self.app(scope, receive, send)


def build_request(app, path: str = "/") -> Request:
    """Build a bare request bound to an app, outside of any server."""
    scope = {
        "type": "http",
        "app": app,
        "method": "GET",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "scheme": "http",
        "server": ("test", 80),
        "query_string": b"",
        "headers": [],
    }
    return Request(scope)


async def header_resolver(request) -> tuple[Context, TrackingStrategy]:
    """Resolve `plan` from the X-Plan header."""
    return Context({"plan": request.headers.get("X-Plan", "free")}), TrackingStrategy.ACTIVE


async def body_resolver(request) -> tuple[Context, TrackingStrategy]:
    """Resolve `plan` from the JSON request body."""
    payload = await request.json()
    return Context({"plan": payload.get("plan")}), TrackingStrategy.DEFAULT
