"""
Default results of denied gated units.
"""

from starlette.responses import JSONResponse, PlainTextResponse

from featuregate.core.config import FeatureGateSettings
from featuregate.core.features.interfaces import Feature


def json_denial(feature: Feature, settings: FeatureGateSettings) -> JSONResponse:
    """API-style denial: `{"detail": "Not Found"}` with a 404 by default."""
    return JSONResponse(
        {"detail": settings.deny_detail},
        status_code=settings.deny_status_code,
    )


def text_denial(feature: Feature, settings: FeatureGateSettings) -> PlainTextResponse:
    """Page-style denial: plain "Not Found" with a 404 by default."""
    return PlainTextResponse(
        settings.deny_detail,
        status_code=settings.deny_status_code,
    )
