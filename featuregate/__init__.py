"""
Feature-flag gating for Starlette and FastAPI.

Gates request processing on feature state from an external evaluation
service, on four surfaces:

Branch - Middleware that only runs when a feature matches:
    use_when_feature(app, "new_auth", lambda b: b.add_middleware(NewAuthMiddleware))

Action - Route handler restricted to a feature:
    @router.get("/beta")
    @feature_restricted("beta")
    async def beta(): ...

Page - HTTPEndpoint restricted to a feature:
    @feature_restricted_page("new_billing")
    class BillingPage(HTTPEndpoint): ...

Endpoint - Routed endpoint restricted to a feature:
    with_feature_restriction(Route("/beta", beta), "beta")

Dependencies run only when a feature matches:
    Depends(feature_restricted_filter("access_audit", audit_access))

Setup:
    add_feature_gate(app, client, lambda gate: gate.use_context_resolver(resolve))
"""

from featuregate.core import (
    FeatureGateBuilder,
    FeatureGateConfigurationError,
    FeatureGateError,
    FeatureGateServices,
    FeatureGateSettings,
    MISSING_REGISTRATION_MESSAGE,
    RestrictionEnforcer,
    add_feature_gate,
    ensure_registered,
    flat_context_resolver,
    get_feature,
    get_settings,
    is_allowed,
    resolve_context,
)

from featuregate.core.features import (
    Company,
    Context,
    Feature,
    FeatureClient,
    FeatureConfig,
    MemoryFeatureClient,
    RestrictionSpec,
    Surface,
    TrackingStrategy,
    User,
    translate,
)

from featuregate.api.middleware import (
    BranchBuilder,
    FeatureBranchMiddleware,
    use_feature_branch,
    use_middleware_when_feature,
    use_middleware_when_not_feature,
    use_when_feature,
    use_when_not_feature,
)

from featuregate.api.filters import (
    feature_restricted,
    feature_restricted_filter,
    feature_restricted_page,
    with_feature_restriction,
)

from featuregate.api.dependencies import feature

__all__ = [
    # Setup
    "FeatureGateBuilder",
    "FeatureGateServices",
    "FeatureGateSettings",
    "add_feature_gate",
    "get_settings",
    # Errors
    "FeatureGateError",
    "FeatureGateConfigurationError",
    "MISSING_REGISTRATION_MESSAGE",
    # Model
    "Company",
    "Context",
    "Feature",
    "FeatureClient",
    "FeatureConfig",
    "MemoryFeatureClient",
    "RestrictionSpec",
    "Surface",
    "TrackingStrategy",
    "User",
    "translate",
    # Core
    "RestrictionEnforcer",
    "ensure_registered",
    "flat_context_resolver",
    "get_feature",
    "is_allowed",
    "resolve_context",
    # Branches
    "BranchBuilder",
    "FeatureBranchMiddleware",
    "use_feature_branch",
    "use_middleware_when_feature",
    "use_middleware_when_not_feature",
    "use_when_feature",
    "use_when_not_feature",
    # Filters
    "feature_restricted",
    "feature_restricted_filter",
    "feature_restricted_page",
    "with_feature_restriction",
    # Dependencies
    "feature",
]
