"""Feature restriction filters for actions, pages and endpoints."""

from featuregate.api.filters.actions import feature_restricted
from featuregate.api.filters.conditional import feature_restricted_filter
from featuregate.api.filters.pages import feature_restricted_page
from featuregate.api.filters.endpoints import (
    FeatureRestrictedEndpoint,
    with_feature_restriction,
)
from featuregate.api.filters.responses import json_denial, text_denial

__all__ = [
    "feature_restricted",
    "feature_restricted_filter",
    "feature_restricted_page",
    "FeatureRestrictedEndpoint",
    "with_feature_restriction",
    "json_denial",
    "text_denial",
]
