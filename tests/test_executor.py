"""Tests for tether/execution/executor.py — the self-healing retry loop."""

import pytest

from conftest import FakeTransport, FailingTransport, FakeValidator, ScriptedSynthesizer
from tether.callbacks import BaseCallback
from tether.exceptions import RetryExhaustedError, TransformError, TransportError
from tether.execution.executor import NO_DATA_ERROR, SelfHealingExecutor, is_self_healing_enabled
from tether.llm.prompts import MAPPING_GUIDE
from tether.types import (
    ApiConfig, Integration, RequestOptions, SelfHealingMode, ValidationVerdict,
)


def _healed(n: int) -> ApiConfig:
    return ApiConfig(id=f"healed-{n}", url_host="https://api.example.com", url_path=f"/v{n}/users")


class _RecordingCallback(BaseCallback):
    def __init__(self):
        self.captured = []

    async def capture_exception(self, error, org_id, context, **kwargs):
        self.captured.append((error, org_id, context))


# ── is_self_healing_enabled ──────────────────────────────────────────────────

class TestSelfHealingPolarity:

    def test_unset_is_enabled(self):
        assert is_self_healing_enabled(RequestOptions()) is True
        assert is_self_healing_enabled(None) is True

    def test_enabled_and_request_only_are_enabled(self):
        assert is_self_healing_enabled(RequestOptions(self_healing=SelfHealingMode.ENABLED))
        assert is_self_healing_enabled(RequestOptions(self_healing=SelfHealingMode.REQUEST_ONLY))

    def test_disabled_is_disabled(self):
        assert not is_self_healing_enabled(RequestOptions(self_healing=SelfHealingMode.DISABLED))


# ── Happy path ────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_valid_config_makes_one_call_and_returns_it(api_config, credentials, config):
    transport = FakeTransport([{"users": [1, 2]}])
    synth = ScriptedSynthesizer()
    validator = FakeValidator()
    executor = SelfHealingExecutor(transport, synth, validator, config=config)

    result = await executor.execute_api_call(api_config, {}, credentials)

    assert result.data == {"users": [1, 2]}
    assert result.config == api_config
    assert len(transport.calls) == 1
    assert transport.calls[0]["config"] == api_config
    assert synth.calls == []
    assert validator.calls == []  # attempt 0 is never validated


# ── Healing ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_first_attempt_never_synthesizes(api_config, credentials, config):
    transport = FakeTransport([TransportError("404"), {"ok": 1}])
    synth = ScriptedSynthesizer([_healed(1)])
    executor = SelfHealingExecutor(transport, synth, FakeValidator(), config=config)

    result = await executor.execute_api_call(api_config, {}, credentials)

    assert transport.calls[0]["config"] == api_config
    assert [c["attempt"] for c in synth.calls] == [1]
    assert result.config == _healed(1)


@pytest.mark.asyncio
async def test_healed_call_sees_one_transcript_message(api_config, credentials, config):
    """Scenario B: the synthesizer is called with exactly the attempt-0 error."""
    transport = FakeTransport([TransportError("API call failed with status 404"), {"ok": 1}])
    synth = ScriptedSynthesizer([_healed(1)])
    executor = SelfHealingExecutor(transport, synth, FakeValidator(), config=config)

    result = await executor.execute_api_call(api_config, {}, credentials)

    assert len(synth.calls[0]["transcript"]) == 1
    assert synth.calls[0]["transcript"][0]["role"] == "user"
    assert "status 404" in synth.calls[0]["transcript"][0]["content"]
    assert result.config.id == "healed-1"


@pytest.mark.asyncio
async def test_success_on_attempt_three_returns_attempt_three_config(api_config, credentials, config):
    transport = FakeTransport([
        TransportError("attempt 0"), TransportError("attempt 1"), TransportError("attempt 2"), {"ok": 1},
    ])
    synth = ScriptedSynthesizer([_healed(1), _healed(2), _healed(3)])
    executor = SelfHealingExecutor(transport, synth, FakeValidator(), config=config)

    result = await executor.execute_api_call(api_config, {}, credentials)

    assert result.config == _healed(3)
    assert result.config != api_config
    assert transport.calls[-1]["config"] == _healed(3)


@pytest.mark.asyncio
async def test_negative_verdict_is_a_failure(api_config, credentials, config):
    transport = FakeTransport([TransportError("bad"), {"wrong": True}, {"users": []}])
    validator = FakeValidator([
        ValidationVerdict(success=False, short_reason="Not a user list"),
        ValidationVerdict(success=True),
    ])
    synth = ScriptedSynthesizer([_healed(1), _healed(2)])
    executor = SelfHealingExecutor(transport, synth, validator, config=config)

    result = await executor.execute_api_call(api_config, {}, credentials)

    assert result.config == _healed(2)
    feedback = synth.calls[1]["transcript"][-1]["content"]
    assert "Not a user list" in feedback
    assert '{"wrong": true}' in feedback


@pytest.mark.asyncio
async def test_empty_body_is_a_failure(api_config, credentials, config):
    transport = FakeTransport([None, {"ok": 1}])
    synth = ScriptedSynthesizer([_healed(1)])
    executor = SelfHealingExecutor(transport, synth, FakeValidator(), config=config)

    await executor.execute_api_call(api_config, {}, credentials)

    assert NO_DATA_ERROR in synth.calls[0]["transcript"][0]["content"]


@pytest.mark.asyncio
async def test_empty_collections_are_valid_data(api_config, credentials, config):
    for body in ([], {}):
        transport = FakeTransport([body])
        synth = ScriptedSynthesizer([_healed(1)])
        executor = SelfHealingExecutor(transport, synth, FakeValidator(), config=config)

        result = await executor.execute_api_call(api_config, {}, credentials)

        assert result.data == body
        assert result.config == api_config
        assert len(transport.calls) == 1
        assert synth.calls == []


@pytest.mark.asyncio
async def test_empty_string_body_is_a_failure(api_config, credentials, config):
    transport = FakeTransport(["", {"ok": 1}])
    synth = ScriptedSynthesizer([_healed(1)])
    executor = SelfHealingExecutor(transport, synth, FakeValidator(), config=config)

    result = await executor.execute_api_call(api_config, {}, credentials)

    assert result.data == {"ok": 1}
    assert NO_DATA_ERROR in synth.calls[0]["transcript"][0]["content"]


@pytest.mark.asyncio
async def test_disabled_healing_retries_original_config_without_validation(api_config, credentials, config):
    transport = FakeTransport([TransportError("flaky"), {"ok": 1}])
    synth = ScriptedSynthesizer([_healed(1)])
    validator = FakeValidator()
    executor = SelfHealingExecutor(transport, synth, validator, config=config)

    result = await executor.execute_api_call(
        api_config, {}, credentials, RequestOptions(self_healing=SelfHealingMode.DISABLED)
    )

    assert result.config == api_config
    assert synth.calls == []
    assert validator.calls == []
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_mapping_guide_appended_once(api_config, credentials, config):
    transport = FakeTransport([TransformError("JMESPath expression 'a[' is invalid")] * 3 + [{"ok": 1}])
    synth = ScriptedSynthesizer([_healed(1)])
    executor = SelfHealingExecutor(transport, synth, FakeValidator(), config=config)

    await executor.execute_api_call(api_config, {}, credentials)

    final_transcript = synth.calls[-1]["transcript"]
    guides = [m for m in final_transcript if m["content"] == MAPPING_GUIDE]
    assert len(guides) == 1


# ── Documentation ────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_documentation_passed_from_integration(api_config, credentials, config):
    synth = ScriptedSynthesizer([_healed(1)])
    executor = SelfHealingExecutor(
        FakeTransport([TransportError("x"), {"ok": 1}]), synth, FakeValidator(), config=config
    )
    integration = Integration(id="github", documentation="GET /users lists users")

    await executor.execute_api_call(api_config, {}, credentials, integration=integration)

    assert synth.calls[0]["documentation"] == "GET /users lists users"


@pytest.mark.asyncio
async def test_pending_documentation_is_skipped(api_config, credentials, config, caplog):
    synth = ScriptedSynthesizer([_healed(1)])
    executor = SelfHealingExecutor(
        FakeTransport([TransportError("x"), {"ok": 1}]), synth, FakeValidator(), config=config
    )
    integration = Integration(id="github", documentation="partial", documentation_pending=True)

    with caplog.at_level("WARNING"):
        await executor.execute_api_call(api_config, {}, credentials, integration=integration)

    assert synth.calls[0]["documentation"] == ""
    assert "still being fetched" in caplog.text


# ── Exhaustion ───────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_exhaustion_caps_attempts_and_names_retry_count(api_config, credentials, config):
    """Scenario E."""
    transport = FailingTransport("API call failed with status 401")
    executor = SelfHealingExecutor(transport, ScriptedSynthesizer(), FakeValidator(), config=config)

    with pytest.raises(RetryExhaustedError) as exc_info:
        await executor.execute_api_call(api_config, {}, credentials, RequestOptions(retries=8))

    assert len(transport.calls) == 8
    assert "8 retries" in str(exc_info.value)
    assert "status 401" in str(exc_info.value)
    assert exc_info.value.retries == 8


@pytest.mark.asyncio
async def test_exhaustion_error_never_contains_credentials(api_config, credentials, config):
    secret = credentials["token"]
    transport = FailingTransport(f"401 for Authorization: Bearer {secret}")
    synth = ScriptedSynthesizer()
    executor = SelfHealingExecutor(transport, synth, FakeValidator(), config=config)

    with pytest.raises(RetryExhaustedError) as exc_info:
        await executor.execute_api_call(api_config, {}, credentials, RequestOptions(retries=3))

    assert secret not in str(exc_info.value)
    assert "{masked_token}" in str(exc_info.value)
    for call in synth.calls:
        assert all(secret not in m["content"] for m in call["transcript"])


@pytest.mark.asyncio
async def test_exhaustion_reports_to_telemetry(api_config, credentials, config):
    callback = _RecordingCallback()
    executor = SelfHealingExecutor(
        FailingTransport(), ScriptedSynthesizer(), FakeValidator(), callbacks=[callback], config=config
    )

    with pytest.raises(RetryExhaustedError):
        await executor.execute_api_call(api_config, {}, credentials, RequestOptions(retries=2))

    assert len(callback.captured) == 1
    error, _, context = callback.captured[0]
    assert isinstance(error, RetryExhaustedError)
    assert context["endpoint"] == "https://api.example.com/users"
    assert context["retries"] == 2


@pytest.mark.asyncio
async def test_default_retry_budget_comes_from_config(api_config, credentials, config):
    config.default_retries = 3
    transport = FailingTransport()
    executor = SelfHealingExecutor(transport, ScriptedSynthesizer(), FakeValidator(), config=config)

    with pytest.raises(RetryExhaustedError):
        await executor.execute_api_call(api_config, {}, credentials)

    assert len(transport.calls) == 3
