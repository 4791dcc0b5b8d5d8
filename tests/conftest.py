"""Test fixtures: fake transport, scripted synthesizer, fake validator, memory store.

All tests should use these fixtures for consistency.
"""

import pytest

from tether.config import TetherConfig
from tether.exceptions import TransportError
from tether.execution import DirectStrategy, LoopStrategy, SelfHealingExecutor, StepRunner
from tether.store import MemoryStore
from tether.transform import TransformFacade
from tether.types import (
    ApiConfig, CallResponse, ExecutionMode, ExecutionStep, SynthesisResult, ValidationVerdict,
)


@pytest.fixture
def config():
    """Test configuration with safe defaults."""
    return TetherConfig(
        debug=True,
        redis_url="redis://localhost:6379/15",  # test DB
        default_llm_model="mock/test-model",
        default_retries=8,
        default_loop_max_iters=1000,
        transport_max_retries=0,
    )


@pytest.fixture
def api_config():
    return ApiConfig(
        id="list-users",
        url_host="https://api.example.com",
        url_path="/users",
        instruction="List all users",
        headers={"Authorization": "Bearer {{token}}"},
    )


@pytest.fixture
def credentials():
    return {"token": "sk-live-SECRET-123"}


# ── Fake transport ────────────────────────────────────────────────────────────

class FakeTransport:
    """Answers from a script of outcomes, one per call.

    Each outcome is either a value (returned as the response body), an
    exception (raised), or a callable ``(config, payload) -> body``. The last
    outcome repeats once the script runs out.
    """

    def __init__(self, outcomes=None):
        self.outcomes = list(outcomes or [{"ok": True}])
        self.calls: list[dict] = []

    async def call(self, config, payload, credentials, options):
        self.calls.append({"config": config, "payload": payload, "options": options})
        index = min(len(self.calls) - 1, len(self.outcomes) - 1)
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        if callable(outcome):
            outcome = outcome(config, payload)
        return CallResponse(data=outcome)


class FailingTransport(FakeTransport):
    """Fails every call with the same error."""

    def __init__(self, message="API call failed with status 401"):
        super().__init__([TransportError(message, status_code=401)])


# ── Scripted synthesizer ─────────────────────────────────────────────────────

class ScriptedSynthesizer:
    """Returns pre-built configs in order and records what it was shown."""

    def __init__(self, configs=None, loop_selector=None, mappings=None):
        self.configs = list(configs or [])
        self.loop_selector = loop_selector
        self.mappings = list(mappings or [])
        self.calls: list[dict] = []
        self.selector_calls: list[dict] = []
        self.mapping_calls: list[dict] = []

    async def synthesize(self, config, documentation, payload, credentials, attempt, transcript):
        self.calls.append({
            "config": config,
            "documentation": documentation,
            "attempt": attempt,
            "transcript": list(transcript),
        })
        if self.configs:
            index = min(len(self.calls) - 1, len(self.configs) - 1)
            new_config = self.configs[index]
        else:
            new_config = config
        reply = {"role": "assistant", "content": f"attempt {attempt}"}
        return SynthesisResult(config=new_config, transcript=[*transcript, reply])

    async def generate_loop_selector(self, step_id, instruction, payload_summary):
        self.selector_calls.append({
            "step_id": step_id,
            "instruction": instruction,
            "payload_summary": payload_summary,
        })
        return self.loop_selector

    async def generate_mapping(self, schema, data, instruction, previous_error=None):
        self.mapping_calls.append({"schema": schema, "previous_error": previous_error})
        if not self.mappings:
            return None
        return self.mappings.pop(0)


class FakeValidator:
    def __init__(self, verdicts=None):
        self.verdicts = list(verdicts or [])
        self.calls: list[dict] = []

    async def validate(self, data, schema, instruction):
        self.calls.append({"data": data, "schema": schema, "instruction": instruction})
        if self.verdicts:
            return self.verdicts.pop(0)
        return ValidationVerdict(success=True)


# ── Wiring fixtures ──────────────────────────────────────────────────────────

@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def synthesizer():
    return ScriptedSynthesizer()


@pytest.fixture
def validator():
    return FakeValidator()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def executor(transport, synthesizer, validator, config):
    return SelfHealingExecutor(transport, synthesizer, validator, config=config)


@pytest.fixture
def runner(executor, synthesizer, config):
    transform = TransformFacade()
    return StepRunner(
        direct=DirectStrategy(executor, transform, config=config),
        loop=LoopStrategy(executor, transform, synthesizer, config=config),
    )


def make_step(api_config, mode=ExecutionMode.DIRECT, **kwargs) -> ExecutionStep:
    return ExecutionStep(id=kwargs.pop("id", "step-1"), api_config=api_config, execution_mode=mode, **kwargs)
