"""
Restriction enforcement.

One allow/deny algorithm shared by every surface (branch, action, page,
endpoint). A surface supplies only how to continue and what its default
deny result looks like.

    allowed  <=>  feature.enabled == requires_enabled
"""

from typing import Any, Awaitable, Callable, TypeVar
import inspect

from starlette.requests import HTTPConnection
import structlog

from .config import FeatureGateSettings
from .features.interfaces import Feature, RestrictionSpec, Surface
from .guard import ensure_registered
from .resolution import resolve_context

logger = structlog.get_logger()

T = TypeVar("T")


def is_allowed(feature: Feature, requires_enabled: bool) -> bool:
    """Check whether a feature's state satisfies a restriction."""
    return feature.enabled == requires_enabled


async def get_feature(connection: HTTPConnection, feature_key: str) -> Feature:
    """
    Evaluate a feature for the current request.

    The request's evaluation context is resolved once and reused by
    every later call within the same request.

    Raises:
        ValueError: If feature_key is empty
        FeatureGateConfigurationError: If the feature gate is not registered
    """
    if connection is None:
        raise ValueError("connection is required")
    RestrictionSpec(feature_key)

    services = ensure_registered(connection.app)
    context, tracking_strategy = await resolve_context(connection, services)
    return await services.client.get_feature(feature_key, context, tracking_strategy)


class RestrictionEnforcer:
    """
    Enforces one restriction on one surface.

    Usage:
        enforcer = RestrictionEnforcer("beta", surface=Surface.ACTION)

        result = await enforcer.enforce(
            request,
            proceed=lambda: handler(request),
            deny=lambda feature, settings: JSONResponse(..., status_code=404),
        )
    """

    def __init__(
        self,
        feature_key: str,
        requires_enabled: bool = True,
        *,
        surface: Surface,
    ):
        self.spec = RestrictionSpec(feature_key, requires_enabled)
        self.surface = Surface(surface)

    @property
    def feature_key(self) -> str:
        return self.spec.feature_key

    @property
    def requires_enabled(self) -> bool:
        return self.spec.requires_enabled

    async def enforce(
        self,
        connection: HTTPConnection,
        proceed: Callable[[], Awaitable[T]],
        deny: Callable[[Feature, FeatureGateSettings], Any],
    ) -> T | Any:
        """
        Run `proceed` if the restriction is met, else produce a denial.

        Args:
            connection: Current request
            proceed: Continuation of the gated unit; awaited at most once
            deny: Builds the surface's default deny result

        Returns:
            The continuation's result unchanged when allowed; otherwise the
            registered handler's result, or the default deny result.
        """
        services = ensure_registered(connection.app)
        context, tracking_strategy = await resolve_context(connection, services)
        feature = await services.client.get_feature(
            self.spec.feature_key, context, tracking_strategy
        )

        if is_allowed(feature, self.spec.requires_enabled):
            return await proceed()

        if services.settings.log_denials:
            logger.info(
                "feature_restricted",
                feature_key=feature.key,
                surface=self.surface.value,
                enabled=feature.enabled,
                requires_enabled=self.spec.requires_enabled,
                path=connection.url.path,
            )

        handler = services.denial_handler(self.surface)
        if handler is None:
            return deny(feature, services.settings)

        result = handler(feature, connection)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return (
            f"<RestrictionEnforcer {self.surface.value} "
            f"feature={self.spec.feature_key!r} requires_enabled={self.spec.requires_enabled}>"
        )
