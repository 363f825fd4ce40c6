"""
Feature model, evaluation contract and context translation.
"""

from .context import Company, Context, User

from .interfaces import (
    ContextResolver,
    DenialHandler,
    Feature,
    FeatureClient,
    FeatureConfig,
    ResolvedContext,
    RestrictionSpec,
    Surface,
    TrackingStrategy,
)

from .translator import RESERVED_KEYS, parse_avatar, translate

from .backends import MemoryFeatureClient

__all__ = [
    # Context
    "Company",
    "Context",
    "User",
    # Interfaces
    "ContextResolver",
    "DenialHandler",
    "Feature",
    "FeatureClient",
    "FeatureConfig",
    "ResolvedContext",
    "RestrictionSpec",
    "Surface",
    "TrackingStrategy",
    # Translation
    "RESERVED_KEYS",
    "parse_avatar",
    "translate",
    # Backends
    "MemoryFeatureClient",
]
