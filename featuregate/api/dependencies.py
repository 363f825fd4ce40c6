"""
FastAPI dependencies for feature evaluation.

Usage:
    from featuregate import feature

    @router.get("/dashboard")
    async def dashboard(new_dashboard: Annotated[Feature, Depends(feature("new_dashboard"))]):
        if new_dashboard.enabled:
            return new_data()
        return old_data()
"""

from typing import Awaitable, Callable

from fastapi import Request

from featuregate.core.enforcement import get_feature
from featuregate.core.features.interfaces import Feature, RestrictionSpec


def feature(feature_key: str) -> Callable[[Request], Awaitable[Feature]]:
    """
    Dependency factory evaluating one feature for the current request.

    The request's evaluation context is shared with every restriction
    the request passes through.
    """
    spec = RestrictionSpec(feature_key)

    async def dependency(request: Request) -> Feature:
        return await get_feature(request, spec.feature_key)

    return dependency
