"""
Feature gate service registration.

All collaborators are registered once, at startup, and frozen into a
FeatureGateServices instance stored on the application state.

Usage:
    from featuregate import add_feature_gate, Surface

    async def resolve(request):
        return Context(user=User(request.headers["X-User"])), TrackingStrategy.DEFAULT

    add_feature_gate(
        app,
        client,
        lambda gate: (
            gate.use_context_resolver(resolve)
                .use_restricted_feature_handler(deny_page, Surface.PAGE)
        ),
    )
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping
import logging

from .config import FeatureGateSettings, get_settings
from .exceptions import FeatureGateConfigurationError
from .features.interfaces import (
    ContextResolver,
    DenialHandler,
    FeatureClient,
    Surface,
)

logger = logging.getLogger(__name__)

# Attribute of `app.state` holding the registered services
STATE_KEY = "feature_gate"


@dataclass(frozen=True)
class FeatureGateServices:
    """
    Registered feature gate collaborators.

    Read-only after startup and shared by all requests.
    """
    client: FeatureClient
    settings: FeatureGateSettings
    context_resolver: ContextResolver | None = None
    denial_handlers: Mapping[Surface, DenialHandler] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def denial_handler(self, surface: Surface) -> DenialHandler | None:
        """Get the custom denial handler for a surface, if any."""
        return self.denial_handlers.get(surface)


class FeatureGateBuilder:
    """
    Collects feature gate registrations during startup.

    Every `use_*` method returns the builder for chaining.
    """

    def __init__(
        self,
        client: FeatureClient,
        settings: FeatureGateSettings | None = None,
    ):
        if client is None:
            raise ValueError("client is required")

        self._client = client
        self._settings = settings or get_settings()
        self._context_resolver: ContextResolver | None = None
        self._denial_handlers: dict[Surface, DenialHandler] = {}

    def use_context_resolver(self, resolver: ContextResolver) -> "FeatureGateBuilder":
        """
        Register the per-request context resolver.

        The resolver runs at most once per request and may be sync or
        async. Without one, requests are evaluated against an empty
        context.
        """
        _require_callable("resolver", resolver)
        if self._context_resolver is not None:
            raise FeatureGateConfigurationError("A context resolver is already registered")

        self._context_resolver = resolver
        return self

    def use_restricted_feature_handler(
        self,
        handler: DenialHandler,
        *surfaces: Surface,
    ) -> "FeatureGateBuilder":
        """
        Register the handler producing the result of a denied gated unit.

        Args:
            handler: Called with (feature, request); may be sync or async
            *surfaces: Surfaces the handler serves (default: action and page)

        Raises:
            FeatureGateConfigurationError: If a surface already has a handler
        """
        _require_callable("handler", handler)
        surfaces = surfaces or (Surface.ACTION, Surface.PAGE)

        for surface in surfaces:
            surface = Surface(surface)
            if surface is Surface.BRANCH:
                raise ValueError("Branches have no denial handler; unmatched requests skip the branch")
            if surface in self._denial_handlers:
                raise FeatureGateConfigurationError(
                    f"A restricted feature handler is already registered for '{surface.value}'"
                )
            self._denial_handlers[surface] = handler

        return self

    def build(self) -> FeatureGateServices:
        """Freeze the registrations."""
        return FeatureGateServices(
            client=self._client,
            settings=self._settings,
            context_resolver=self._context_resolver,
            denial_handlers=MappingProxyType(dict(self._denial_handlers)),
        )


def add_feature_gate(
    app: Any,
    client: FeatureClient,
    configure: Callable[[FeatureGateBuilder], Any] | None = None,
    *,
    settings: FeatureGateSettings | None = None,
) -> FeatureGateServices:
    """
    Register the feature gate on an application.

    Must be called during startup, before any branch is installed.

    Args:
        app: Starlette or FastAPI application
        client: Evaluation client of the feature service
        configure: Optional callback registering the resolver and handlers
        settings: Settings override (default: environment settings)

    Returns:
        The frozen services, also stored as `app.state.feature_gate`
    """
    if app is None:
        raise ValueError("app is required")

    builder = FeatureGateBuilder(client, settings)
    if configure is not None:
        _require_callable("configure", configure)
        configure(builder)

    services = builder.build()
    setattr(app.state, STATE_KEY, services)

    logger.debug(
        "Feature gate registered",
        extra={
            "client": type(client).__name__,
            "context_resolver": services.context_resolver is not None,
            "denial_handlers": sorted(s.value for s in services.denial_handlers),
        },
    )
    return services


def _require_callable(name: str, value: Any) -> None:
    if value is None:
        raise ValueError(f"{name} is required")
    if not callable(value):
        raise TypeError(f"{name} must be callable")
