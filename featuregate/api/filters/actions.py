"""
Feature restriction for route handler functions.

Usage:
    from featuregate import feature_restricted

    @router.get("/beta")
    @feature_restricted("beta")
    async def beta_endpoint(user: CurrentUser):
        return {"feature": "beta"}

    @router.get("/legacy")
    @feature_restricted("new_ui", enabled=False)
    async def legacy_ui():
        ...

Sync handlers run in the threadpool. The handler does not need to
declare a Request parameter; one is added to the signature FastAPI
sees. Plain Starlette handlers receive the request positionally as usual.
"""

from functools import wraps
from typing import Any, Callable
import inspect

from starlette.concurrency import run_in_threadpool
from starlette.requests import HTTPConnection, Request

from featuregate.core.enforcement import RestrictionEnforcer
from featuregate.core.exceptions import FeatureGateConfigurationError
from featuregate.core.features.interfaces import Surface

from .responses import json_denial

# Name of the Request parameter added to handlers that declare none
REQUEST_PARAMETER = "feature_gate_request"


def feature_restricted(
    feature_key: str,
    enabled: bool = True,
) -> Callable[[Callable], Callable]:
    """
    Decorator restricting a route handler to a feature state.

    Args:
        feature_key: The feature flag key to check
        enabled: Required feature state (False restricts to "disabled")

    Denied requests get the action handler registered with
    `use_restricted_feature_handler`, or a JSON 404 by default.

    Raises:
        ValueError: If feature_key is empty (at decoration time)
    """
    enforcer = RestrictionEnforcer(feature_key, enabled, surface=Surface.ACTION)

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func, eval_str=True)
        request_parameter = find_request_parameter(signature)

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            if request_parameter is None:
                request = kwargs.pop(REQUEST_PARAMETER, None)
            else:
                request = kwargs.get(request_parameter)

            if request is None:
                request = next((a for a in args if isinstance(a, HTTPConnection)), None)
            if request is None:
                raise FeatureGateConfigurationError(
                    f"Cannot find the current request for '{func.__qualname__}'"
                )

            async def proceed() -> Any:
                if inspect.iscoroutinefunction(func):
                    return await func(*args, **kwargs)
                return await run_in_threadpool(func, *args, **kwargs)

            return await enforcer.enforce(request, proceed, json_denial)

        if request_parameter is None:
            signature = add_request_parameter(signature)
        wrapper.__signature__ = signature
        return wrapper

    return decorator


def find_request_parameter(signature: inspect.Signature) -> str | None:
    for name, parameter in signature.parameters.items():
        annotation = parameter.annotation
        if inspect.isclass(annotation) and issubclass(annotation, HTTPConnection):
            return name
    return None


def add_request_parameter(signature: inspect.Signature) -> inspect.Signature:
    parameters = list(signature.parameters.values())
    injected = inspect.Parameter(
        REQUEST_PARAMETER,
        inspect.Parameter.KEYWORD_ONLY,
        annotation=Request,
    )

    # Keyword-only parameters must precede **kwargs
    if parameters and parameters[-1].kind is inspect.Parameter.VAR_KEYWORD:
        parameters.insert(len(parameters) - 1, injected)
    else:
        parameters.append(injected)

    return signature.replace(parameters=parameters)
