"""
Registration guard.

Fails fast with an actionable message when a gated unit runs on an
application that never registered the feature gate.
"""

from typing import Any

from .exceptions import FeatureGateConfigurationError
from .registry import STATE_KEY, FeatureGateServices

MISSING_REGISTRATION_MESSAGE = (
    "Feature gate services not found. Add the required services by calling "
    "'featuregate.add_feature_gate(app, client)' in the application startup code."
)


def ensure_registered(app: Any) -> FeatureGateServices:
    """
    Get the registered services of an application.

    Raises:
        ValueError: If app is None
        FeatureGateConfigurationError: If add_feature_gate was never called
    """
    if app is None:
        raise ValueError("app is required")

    state = getattr(app, "state", None)
    services = getattr(state, STATE_KEY, None)
    if not isinstance(services, FeatureGateServices):
        raise FeatureGateConfigurationError(MISSING_REGISTRATION_MESSAGE)

    return services
