"""
Feature-conditional FastAPI dependencies.

Wraps another dependency so that it only runs when a feature matches.
When it does not, the dependency is skipped, it resolves to None and
the request continues. It is the route-level counterpart of
`use_when_feature`.

Usage:
    from featuregate import feature_restricted_filter

    async def audit_access(request: Request, user: CurrentUser):
        await audit_log.record(user, request.url.path)

    @router.get(
        "/reports",
        dependencies=[Depends(feature_restricted_filter("access_audit", audit_access))],
    )
    async def reports(): ...

    @router.get("/dashboard")
    async def dashboard(
        quota: Annotated[Quota | None, Depends(feature_restricted_filter("quotas", load_quota))],
    ): ...

The wrapped dependency's own parameters (query, headers, sub-dependencies)
are still declared to FastAPI and resolved on every request; only its
body is skipped.
"""

from typing import Any, Callable
import inspect

from starlette.concurrency import run_in_threadpool

from featuregate.core.enforcement import get_feature, is_allowed
from featuregate.core.exceptions import FeatureGateConfigurationError
from featuregate.core.features.interfaces import RestrictionSpec

from .actions import REQUEST_PARAMETER, add_request_parameter, find_request_parameter


def feature_restricted_filter(
    feature_key: str,
    dependency: Callable[..., Any],
    enabled: bool = True,
) -> Callable[..., Any]:
    """
    Build a dependency running `dependency` only when the feature matches.

    Args:
        feature_key: The feature flag key to check
        dependency: Sync or async dependency callable
        enabled: Feature state under which the dependency runs

    Returns:
        A dependency resolving to the wrapped dependency's result, or
        None when the feature does not match

    Raises:
        ValueError: If feature_key is empty or dependency is None
        TypeError: If dependency is not callable or is a generator
    """
    spec = RestrictionSpec(feature_key, enabled)
    if dependency is None:
        raise ValueError("dependency is required")
    if not callable(dependency):
        raise TypeError("dependency must be callable")
    if inspect.isgeneratorfunction(dependency) or inspect.isasyncgenfunction(dependency):
        raise TypeError("feature_restricted_filter cannot wrap yield dependencies")

    signature = inspect.signature(dependency, eval_str=True)
    request_parameter = find_request_parameter(signature)

    async def conditional(*args: Any, **kwargs: Any) -> Any:
        if request_parameter is None:
            request = kwargs.pop(REQUEST_PARAMETER, None)
        else:
            request = kwargs.get(request_parameter)
        if request is None:
            raise FeatureGateConfigurationError(
                f"Cannot find the current request for '{getattr(dependency, '__qualname__', dependency)}'"
            )

        feature = await get_feature(request, spec.feature_key)
        if not is_allowed(feature, spec.requires_enabled):
            return None

        if _is_async(dependency):
            return await dependency(*args, **kwargs)
        return await run_in_threadpool(dependency, *args, **kwargs)

    if request_parameter is None:
        signature = add_request_parameter(signature)
    conditional.__signature__ = signature
    conditional.__name__ = f"feature_restricted_{getattr(dependency, '__name__', 'dependency')}"
    return conditional


def _is_async(dependency: Callable[..., Any]) -> bool:
    if inspect.iscoroutinefunction(dependency):
        return True
    # Instances with an async __call__
    return not inspect.isclass(dependency) and inspect.iscoroutinefunction(
        getattr(dependency, "__call__", None)
    )
