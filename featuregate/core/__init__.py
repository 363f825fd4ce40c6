"""
Feature gate core: registration, context resolution and enforcement.
"""

from .config import FeatureGateSettings, get_settings
from .exceptions import FeatureGateError, FeatureGateConfigurationError
from .registry import FeatureGateBuilder, FeatureGateServices, add_feature_gate
from .guard import MISSING_REGISTRATION_MESSAGE, ensure_registered
from .resolution import flat_context_resolver, resolve_context
from .enforcement import RestrictionEnforcer, get_feature, is_allowed

__all__ = [
    "FeatureGateSettings",
    "get_settings",
    "FeatureGateError",
    "FeatureGateConfigurationError",
    "FeatureGateBuilder",
    "FeatureGateServices",
    "add_feature_gate",
    "MISSING_REGISTRATION_MESSAGE",
    "ensure_registered",
    "flat_context_resolver",
    "resolve_context",
    "RestrictionEnforcer",
    "get_feature",
    "is_allowed",
]
