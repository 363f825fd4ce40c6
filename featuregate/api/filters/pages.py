"""
Feature restriction for page handlers (Starlette HTTPEndpoint).

Usage:
    from featuregate import feature_restricted_page

    @feature_restricted_page("new_billing")
    class BillingPage(HTTPEndpoint):
        async def get(self, request):
            return HTMLResponse(render("billing.html"))

    class ReportsPage(HTTPEndpoint):
        async def get(self, request):
            ...

        @feature_restricted_page("report_export")
        async def post(self, request):
            ...
"""

from functools import wraps
from typing import Any, Callable
import inspect

from starlette.concurrency import run_in_threadpool
from starlette.endpoints import HTTPEndpoint
from starlette.requests import Request

from featuregate.core.enforcement import RestrictionEnforcer
from featuregate.core.features.interfaces import Surface

from .responses import text_denial

HTTP_METHODS = ("get", "head", "post", "put", "patch", "delete", "options")


def feature_restricted_page(
    feature_key: str,
    enabled: bool = True,
) -> Callable[[Any], Any]:
    """
    Decorator restricting a page, or one of its handlers, to a feature state.

    Applied to an HTTPEndpoint subclass it restricts every HTTP method
    handler the class has. Applied to a handler method it restricts
    that handler only.

    Denied requests get the page handler registered with
    `use_restricted_feature_handler`, or a plain-text 404 by default.
    """
    enforcer = RestrictionEnforcer(feature_key, enabled, surface=Surface.PAGE)

    def decorator(target: Any) -> Any:
        if inspect.isclass(target):
            if not issubclass(target, HTTPEndpoint):
                raise TypeError("feature_restricted_page can only decorate HTTPEndpoint subclasses")

            for method in HTTP_METHODS:
                handler = getattr(target, method, None)
                if handler is not None:
                    setattr(target, method, _restrict(handler, enforcer))
            return target

        if callable(target):
            return _restrict(target, enforcer)

        raise TypeError("feature_restricted_page can only decorate pages or page handlers")

    return decorator


def _restrict(handler: Callable, enforcer: RestrictionEnforcer) -> Callable:
    @wraps(handler)
    async def wrapper(self: HTTPEndpoint, request: Request) -> Any:
        async def proceed() -> Any:
            if inspect.iscoroutinefunction(handler):
                return await handler(self, request)
            return await run_in_threadpool(handler, self, request)

        return await enforcer.enforce(request, proceed, text_denial)

    return wrapper
