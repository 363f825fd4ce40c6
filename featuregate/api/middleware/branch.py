"""
Feature-conditional middleware branches.

A branch is a sub-chain of middleware that runs in front of the rest
of the application when a feature matches. It joins back: the end of
the branch is the original downstream app, so downstream runs exactly
once whether the branch was taken or not.

    A -> Branch(X) -> B

    X matches:         A, branch middleware, B
    X does not match:  A, B

Usage:
    from featuregate import use_when_feature

    use_when_feature(
        app,
        "new_auth",
        lambda branch: branch.add_middleware(NewAuthMiddleware, audience="api"),
    )
"""

from typing import Any, Callable
import logging

from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.types import ASGIApp, Receive, Scope, Send

from featuregate.api.replay import cached_body_receive
from featuregate.core.enforcement import is_allowed
from featuregate.core.features.interfaces import RestrictionSpec
from featuregate.core.guard import ensure_registered
from featuregate.core.registry import FeatureGateServices
from featuregate.core.resolution import resolve_context

logger = logging.getLogger(__name__)


class BranchBuilder:
    """
    Collects the middleware of a branch.

    Middleware order follows Starlette: first added is outermost.
    """

    def __init__(self):
        self.middleware: list[Middleware] = []

    def add_middleware(
        self,
        middleware_class: Callable[..., ASGIApp],
        *args: Any,
        **kwargs: Any,
    ) -> "BranchBuilder":
        """Add a middleware to the branch."""
        if not callable(middleware_class):
            raise TypeError("middleware_class must be callable")
        self.middleware.append(Middleware(middleware_class, *args, **kwargs))
        return self

    def build(self, downstream: ASGIApp) -> ASGIApp:
        """Wrap `downstream` in the branch middleware."""
        app = downstream
        for cls, args, kwargs in reversed(self.middleware):
            app = cls(app, *args, **kwargs)
        return app


class FeatureBranchMiddleware:
    """
    Routes HTTP requests through a branch when a feature matches.

    The services are injected at construction; registration is checked
    once by the installing call, not per request. Lifespan and
    websocket scopes bypass the branch.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        services: FeatureGateServices,
        feature_key: str,
        requires_enabled: bool = True,
        middleware: tuple[Middleware, ...] | list[Middleware] = (),
    ):
        if services is None:
            raise ValueError("services is required")

        self.app = app
        self.services = services
        self.spec = RestrictionSpec(feature_key, requires_enabled)

        builder = BranchBuilder()
        builder.middleware.extend(middleware)
        self.branch = builder.build(app)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        context, tracking_strategy = await resolve_context(request, self.services)
        feature = await self.services.client.get_feature(
            self.spec.feature_key, context, tracking_strategy
        )

        receive = cached_body_receive(request, receive)
        if is_allowed(feature, self.spec.requires_enabled):
            await self.branch(scope, receive, send)
        else:
            await self.app(scope, receive, send)


# ============================================================
# INSTALLATION
# ============================================================

def use_feature_branch(
    app: Any,
    feature_key: str,
    requires_enabled: bool,
    configure: Callable[[BranchBuilder], Any],
) -> Any:
    """
    Install a branch taken when the feature's state equals `requires_enabled`.

    Args:
        app: Starlette or FastAPI application
        feature_key: Feature deciding whether the branch is taken
        requires_enabled: Feature state that routes into the branch
        configure: Adds the branch middleware to a BranchBuilder

    Returns:
        The application, for chaining

    Raises:
        ValueError: If app is None or feature_key is empty
        TypeError: If configure is not callable
        FeatureGateConfigurationError: If the feature gate is not registered
    """
    if app is None:
        raise ValueError("app is required")
    spec = RestrictionSpec(feature_key, requires_enabled)
    if configure is None:
        raise ValueError("configure is required")
    if not callable(configure):
        raise TypeError("configure must be callable")

    services = ensure_registered(app)

    builder = BranchBuilder()
    configure(builder)

    app.add_middleware(
        FeatureBranchMiddleware,
        services=services,
        feature_key=spec.feature_key,
        requires_enabled=spec.requires_enabled,
        middleware=tuple(builder.middleware),
    )

    logger.debug(
        "Feature branch installed",
        extra={
            "feature_key": spec.feature_key,
            "requires_enabled": spec.requires_enabled,
            "branch_middleware": len(builder.middleware),
        },
    )
    return app


def use_when_feature(
    app: Any,
    feature_key: str,
    configure: Callable[[BranchBuilder], Any],
) -> Any:
    """Install a branch taken when the feature is enabled."""
    return use_feature_branch(app, feature_key, True, configure)


def use_when_not_feature(
    app: Any,
    feature_key: str,
    configure: Callable[[BranchBuilder], Any],
) -> Any:
    """Install a branch taken when the feature is disabled."""
    return use_feature_branch(app, feature_key, False, configure)


def use_middleware_when_feature(
    app: Any,
    feature_key: str,
    middleware_class: Callable[..., ASGIApp],
    *args: Any,
    **kwargs: Any,
) -> Any:
    """Run a single middleware only when the feature is enabled."""
    return use_feature_branch(
        app,
        feature_key,
        True,
        lambda branch: branch.add_middleware(middleware_class, *args, **kwargs),
    )


def use_middleware_when_not_feature(
    app: Any,
    feature_key: str,
    middleware_class: Callable[..., ASGIApp],
    *args: Any,
    **kwargs: Any,
) -> Any:
    """Run a single middleware only when the feature is disabled."""
    return use_feature_branch(
        app,
        feature_key,
        False,
        lambda branch: branch.add_middleware(middleware_class, *args, **kwargs),
    )
