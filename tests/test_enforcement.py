"""
Tests for the shared restriction enforcement algorithm.
"""

from unittest.mock import AsyncMock

import pytest
from starlette.applications import Starlette
from starlette.responses import JSONResponse
from structlog.testing import capture_logs

from featuregate import (
    Context,
    Feature,
    FeatureGateConfigurationError,
    MISSING_REGISTRATION_MESSAGE,
    RestrictionEnforcer,
    Surface,
    TrackingStrategy,
    add_feature_gate,
    get_feature,
    is_allowed,
)

from conftest import build_request

DENIED = object()


def default_deny(feature, settings):
    return DENIED


@pytest.mark.parametrize(
    "enabled, requires_enabled, allowed",
    [
        (True, True, True),
        (False, False, True),
        (True, False, False),
        (False, True, False),
    ],
)
def test_is_allowed_is_xnor(enabled, requires_enabled, allowed):
    assert is_allowed(Feature("beta", enabled), requires_enabled) is allowed


@pytest.mark.asyncio
@pytest.mark.parametrize("enabled", [True, False])
@pytest.mark.parametrize("requires_enabled", [True, False])
async def test_enforce_truth_table(feature_client, settings, enabled, requires_enabled):
    feature_client.set_flag("beta", enabled)
    app = Starlette()
    add_feature_gate(app, feature_client, settings=settings)
    proceed = AsyncMock(return_value="continued")

    enforcer = RestrictionEnforcer("beta", requires_enabled, surface=Surface.ACTION)
    result = await enforcer.enforce(build_request(app), proceed, default_deny)

    if enabled == requires_enabled:
        assert result == "continued"
        proceed.assert_awaited_once()
    else:
        assert result is DENIED
        proceed.assert_not_called()


@pytest.mark.asyncio
async def test_custom_handler_replaces_default(feature_client, settings):
    seen = []

    async def handler(feature, request):
        seen.append((feature, request))
        return JSONResponse({"upgrade": feature.key}, status_code=402)

    app = Starlette()
    add_feature_gate(
        app,
        feature_client,
        lambda gate: gate.use_restricted_feature_handler(handler, Surface.ACTION),
        settings=settings,
    )
    request = build_request(app)

    enforcer = RestrictionEnforcer("legacy", surface=Surface.ACTION)
    result = await enforcer.enforce(request, AsyncMock(), default_deny)

    assert result.status_code == 402
    assert seen == [(Feature("legacy", False), request)]


@pytest.mark.asyncio
async def test_handler_is_only_used_for_its_surface(feature_client, settings):
    app = Starlette()
    add_feature_gate(
        app,
        feature_client,
        lambda gate: gate.use_restricted_feature_handler(lambda f, r: "handled", Surface.ENDPOINT),
        settings=settings,
    )

    page = RestrictionEnforcer("legacy", surface=Surface.PAGE)
    endpoint = RestrictionEnforcer("legacy", surface=Surface.ENDPOINT)

    assert await page.enforce(build_request(app), AsyncMock(), default_deny) is DENIED
    assert await endpoint.enforce(build_request(app), AsyncMock(), default_deny) == "handled"


@pytest.mark.asyncio
async def test_enforce_passes_resolved_context_to_client(feature_client, settings):
    context = Context({"plan": "gold"})
    app = Starlette()
    add_feature_gate(
        app,
        feature_client,
        lambda gate: gate.use_context_resolver(lambda request: (context, TrackingStrategy.INACTIVE)),
        settings=settings,
    )

    enforcer = RestrictionEnforcer("beta", surface=Surface.ENDPOINT)
    await enforcer.enforce(build_request(app), AsyncMock(), default_deny)

    evaluation = feature_client.evaluations[-1]
    assert evaluation.key == "beta"
    assert evaluation.context is context
    assert evaluation.tracking_strategy is TrackingStrategy.INACTIVE


@pytest.mark.asyncio
async def test_missing_registration_fails_before_evaluation(settings):
    enforcer = RestrictionEnforcer("beta", surface=Surface.ACTION)
    proceed = AsyncMock()

    with pytest.raises(FeatureGateConfigurationError) as exc_info:
        await enforcer.enforce(build_request(Starlette()), proceed, default_deny)

    assert str(exc_info.value) == MISSING_REGISTRATION_MESSAGE
    proceed.assert_not_called()


@pytest.mark.asyncio
async def test_evaluation_errors_propagate_unchanged(settings):
    client = AsyncMock()
    client.get_feature.side_effect = ConnectionError("flag service down")
    app = Starlette()
    add_feature_gate(app, client, settings=settings)

    enforcer = RestrictionEnforcer("beta", surface=Surface.ENDPOINT)

    with pytest.raises(ConnectionError, match="flag service down"):
        await enforcer.enforce(build_request(app), AsyncMock(), default_deny)
    assert client.get_feature.await_count == 1


def test_enforcer_validates_key_synchronously():
    with pytest.raises(ValueError):
        RestrictionEnforcer("", surface=Surface.ACTION)


@pytest.mark.asyncio
async def test_denials_are_logged(feature_client, settings):
    app = Starlette()
    add_feature_gate(app, feature_client, settings=settings)
    enforcer = RestrictionEnforcer("legacy", surface=Surface.PAGE)

    with capture_logs() as logs:
        await enforcer.enforce(build_request(app, "/reports"), AsyncMock(), default_deny)

    assert logs == [
        {
            "event": "feature_restricted",
            "log_level": "info",
            "feature_key": "legacy",
            "surface": "page",
            "enabled": False,
            "requires_enabled": True,
            "path": "/reports",
        }
    ]


@pytest.mark.asyncio
async def test_denial_logging_can_be_disabled(feature_client, settings):
    app = Starlette()
    add_feature_gate(app, feature_client, settings=settings.model_copy(update={"log_denials": False}))
    enforcer = RestrictionEnforcer("legacy", surface=Surface.PAGE)

    with capture_logs() as logs:
        await enforcer.enforce(build_request(app), AsyncMock(), default_deny)

    assert logs == []


# ============ get_feature ============


@pytest.mark.asyncio
async def test_get_feature_evaluates_for_request(feature_client, settings):
    app = Starlette()
    add_feature_gate(app, feature_client, settings=settings)

    feature = await get_feature(build_request(app), "beta")

    assert feature == Feature("beta", True)


@pytest.mark.asyncio
async def test_get_feature_validates_key(feature_client, settings):
    app = Starlette()
    add_feature_gate(app, feature_client, settings=settings)

    with pytest.raises(ValueError):
        await get_feature(build_request(app), "")
    assert feature_client.evaluations == []
