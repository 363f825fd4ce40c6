"""
Tests for feature gate registration and the registration guard.
"""

from dataclasses import FrozenInstanceError

import pytest
from starlette.applications import Starlette

from featuregate import (
    FeatureGateBuilder,
    FeatureGateConfigurationError,
    MISSING_REGISTRATION_MESSAGE,
    Surface,
    add_feature_gate,
    ensure_registered,
)


async def deny(feature, request):
    return None


def test_add_feature_gate_stores_services(feature_client, settings):
    app = Starlette()

    services = add_feature_gate(app, feature_client, settings=settings)

    assert app.state.feature_gate is services
    assert services.client is feature_client
    assert services.settings is settings
    assert services.context_resolver is None
    assert dict(services.denial_handlers) == {}


def test_configure_callback_registers_collaborators(feature_client, settings):
    app = Starlette()

    async def resolver(request):
        ...

    services = add_feature_gate(
        app,
        feature_client,
        lambda gate: gate.use_context_resolver(resolver).use_restricted_feature_handler(
            deny, Surface.ENDPOINT
        ),
        settings=settings,
    )

    assert services.context_resolver is resolver
    assert services.denial_handler(Surface.ENDPOINT) is deny
    assert services.denial_handler(Surface.ACTION) is None


def test_add_feature_gate_requires_client(settings):
    with pytest.raises(ValueError):
        add_feature_gate(Starlette(), None, settings=settings)


def test_add_feature_gate_rejects_non_callable_configure(feature_client, settings):
    with pytest.raises(TypeError):
        add_feature_gate(Starlette(), feature_client, "not callable", settings=settings)


def test_handler_defaults_to_action_and_page(feature_client, settings):
    services = FeatureGateBuilder(feature_client, settings).use_restricted_feature_handler(deny).build()

    assert set(services.denial_handlers) == {Surface.ACTION, Surface.PAGE}


def test_handler_registered_at_most_once_per_surface(feature_client, settings):
    builder = FeatureGateBuilder(feature_client, settings)
    builder.use_restricted_feature_handler(deny, Surface.ACTION)

    with pytest.raises(FeatureGateConfigurationError):
        builder.use_restricted_feature_handler(deny, Surface.ACTION)

    builder.use_restricted_feature_handler(deny, Surface.ENDPOINT)


def test_branch_has_no_denial_handler(feature_client, settings):
    with pytest.raises(ValueError):
        FeatureGateBuilder(feature_client, settings).use_restricted_feature_handler(deny, Surface.BRANCH)


def test_resolver_registered_once(feature_client, settings):
    builder = FeatureGateBuilder(feature_client, settings)
    builder.use_context_resolver(lambda request: None)

    with pytest.raises(FeatureGateConfigurationError):
        builder.use_context_resolver(lambda request: None)


@pytest.mark.parametrize("resolver, error", [(None, ValueError), ("resolver", TypeError)])
def test_resolver_must_be_callable(feature_client, settings, resolver, error):
    with pytest.raises(error):
        FeatureGateBuilder(feature_client, settings).use_context_resolver(resolver)


def test_services_are_read_only(feature_client, settings):
    services = FeatureGateBuilder(feature_client, settings).use_restricted_feature_handler(deny).build()

    with pytest.raises(FrozenInstanceError):
        services.client = None
    with pytest.raises(TypeError):
        services.denial_handlers[Surface.ENDPOINT] = deny


def test_builder_changes_after_build_do_not_leak(feature_client, settings):
    builder = FeatureGateBuilder(feature_client, settings)
    services = builder.build()

    builder.use_restricted_feature_handler(deny, Surface.ENDPOINT)

    assert services.denial_handler(Surface.ENDPOINT) is None


# ============ Guard ============


def test_ensure_registered_returns_services(feature_client, settings):
    app = Starlette()
    services = add_feature_gate(app, feature_client, settings=settings)

    assert ensure_registered(app) is services


def test_ensure_registered_names_the_setup_call():
    with pytest.raises(FeatureGateConfigurationError) as exc_info:
        ensure_registered(Starlette())

    assert str(exc_info.value) == MISSING_REGISTRATION_MESSAGE
    assert "add_feature_gate(app, client)" in str(exc_info.value)


def test_ensure_registered_rejects_foreign_state():
    app = Starlette()
    app.state.feature_gate = object()

    with pytest.raises(FeatureGateConfigurationError):
        ensure_registered(app)


def test_ensure_registered_requires_app():
    with pytest.raises(ValueError):
        ensure_registered(None)
