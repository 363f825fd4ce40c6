"""
Per-request evaluation context resolution.

The registered context resolver runs at most once per request, however
many gated units the request passes through. The result is memoized in
the request's ASGI state under a private key.

Concurrent gated units of one request share a single in-flight
resolution: the first caller runs the resolver, the others await its
result (or its failure, or its cancellation).
"""

from collections.abc import Mapping
from typing import Any, Callable
import asyncio
import inspect
import logging

from starlette.requests import HTTPConnection

from .exceptions import FeatureGateConfigurationError
from .features.context import Context
from .features.interfaces import ContextResolver, ResolvedContext, TrackingStrategy
from .features.translator import COMPANY_AVATAR_KEY, USER_AVATAR_KEY, translate
from .registry import FeatureGateServices

logger = logging.getLogger(__name__)

# Private, identity-compared key in the per-request state bag
_RESOLVED_CONTEXT_KEY = object()


async def resolve_context(
    connection: HTTPConnection,
    services: FeatureGateServices,
) -> ResolvedContext:
    """
    Get the evaluation context of the current request.

    Args:
        connection: Current request (or websocket) connection
        services: Registered feature gate services

    Returns:
        (context, tracking_strategy). An empty context with the default
        strategy when no resolver is registered.

    Raises:
        FeatureGateConfigurationError: If the resolver breaks its contract
    """
    if connection is None:
        raise ValueError("connection is required")

    resolver = services.context_resolver
    if resolver is None:
        return Context(), TrackingStrategy.DEFAULT

    bag: dict[Any, Any] = connection.scope.setdefault("state", {})
    pending: asyncio.Future | None = bag.get(_RESOLVED_CONTEXT_KEY)
    if pending is not None:
        if pending.done():
            return pending.result()
        # Shielded so a cancelled waiter does not cancel the shared resolution
        return await asyncio.shield(pending)

    future = asyncio.get_running_loop().create_future()
    bag[_RESOLVED_CONTEXT_KEY] = future
    try:
        resolved = await _run_resolver(resolver, connection)
    except asyncio.CancelledError:
        bag.pop(_RESOLVED_CONTEXT_KEY, None)
        future.cancel()
        raise
    except Exception as exc:
        bag.pop(_RESOLVED_CONTEXT_KEY, None)
        future.set_exception(exc)
        # Re-raised below; waiters receive it through the future
        future.exception()
        raise

    future.set_result(resolved)
    return resolved


async def _run_resolver(
    resolver: ContextResolver,
    connection: HTTPConnection,
) -> ResolvedContext:
    resolved = resolver(connection)
    if inspect.isawaitable(resolved):
        resolved = await resolved

    try:
        context, tracking_strategy = resolved
    except (TypeError, ValueError):
        raise FeatureGateConfigurationError(
            "The context resolver must return a (context, tracking_strategy) pair."
        ) from None

    if context is None:
        raise FeatureGateConfigurationError("The evaluation context cannot be None.")
    if not isinstance(context, Context):
        raise FeatureGateConfigurationError(
            f"The evaluation context must be a Context, not {type(context).__name__}."
        )
    if not isinstance(tracking_strategy, TrackingStrategy):
        raise FeatureGateConfigurationError(
            f"The tracking strategy must be a TrackingStrategy, not {type(tracking_strategy).__name__}."
        )

    return context, tracking_strategy


def flat_context_resolver(
    extract: Callable[[HTTPConnection], Any],
    *,
    tracking_strategy: TrackingStrategy = TrackingStrategy.DEFAULT,
) -> ContextResolver:
    """
    Build a context resolver from a flat context extractor.

    Args:
        extract: Returns the request's flat context mapping (sync or async)
        tracking_strategy: Strategy reported with every resolved context

    Usage:
        def from_headers(request):
            return {"targetingKey": request.headers.get("X-User-Id"), "plan": {"tier": "gold"}}

        gate.use_context_resolver(flat_context_resolver(from_headers))
    """
    if not callable(extract):
        raise TypeError("extract must be callable")

    async def resolver(connection: HTTPConnection) -> ResolvedContext:
        flat = extract(connection)
        if inspect.isawaitable(flat):
            flat = await flat
        if flat is not None and not isinstance(flat, Mapping):
            raise FeatureGateConfigurationError(
                f"The flat context must be a mapping, not {type(flat).__name__}."
            )

        context = translate(flat)
        if flat:
            _log_dropped_avatars(flat, context)
        return context, tracking_strategy

    return resolver


def _log_dropped_avatars(flat: Mapping[str, Any], context: Context) -> None:
    if context.user and flat.get(USER_AVATAR_KEY) and context.user.avatar is None:
        logger.warning(
            "Ignoring malformed user avatar URL",
            extra={"user_id": context.user.id, "avatar": flat.get(USER_AVATAR_KEY)},
        )
    if context.company and flat.get(COMPANY_AVATAR_KEY) and context.company.avatar is None:
        logger.warning(
            "Ignoring malformed company avatar URL",
            extra={"company_id": context.company.id, "avatar": flat.get(COMPANY_AVATAR_KEY)},
        )
