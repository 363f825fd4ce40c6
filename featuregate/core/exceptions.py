"""
Feature gate exceptions.
"""


class FeatureGateError(Exception):
    """Base class for feature gate errors."""
    pass


class FeatureGateConfigurationError(FeatureGateError):
    """
    Raised when the feature gate is wired incorrectly.

    Covers missing service registration, resolvers that break their
    contract and duplicate handler registration.
    """
    pass
