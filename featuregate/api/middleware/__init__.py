"""Middleware package."""

from featuregate.api.middleware.branch import (
    BranchBuilder,
    FeatureBranchMiddleware,
    use_feature_branch,
    use_middleware_when_feature,
    use_middleware_when_not_feature,
    use_when_feature,
    use_when_not_feature,
)

__all__ = [
    "BranchBuilder",
    "FeatureBranchMiddleware",
    "use_feature_branch",
    "use_middleware_when_feature",
    "use_middleware_when_not_feature",
    "use_when_feature",
    "use_when_not_feature",
]
