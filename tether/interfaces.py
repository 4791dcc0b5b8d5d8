"""Collaborator protocols the execution core depends on.

The core never imports a concrete store, transport, or LLM. Default
implementations live in tether.store, tether.transport, tether.synthesis,
tether.validation and tether.webhook; tests substitute fakes.
"""

from typing import Any, Optional, Protocol, runtime_checkable

from tether.types import (
    ApiConfig, CallResponse, Integration, RequestOptions, RunRecord,
    SynthesisResult, TransformConfig, ValidationVerdict,
)


@runtime_checkable
class KeyedStore(Protocol):
    """Persistent keyed storage for configs, runs, and integrations.

    Each key's value is opaque structured data. Implementations must give
    atomic per-key reads and writes; no cross-key transactions are needed.
    """

    async def get_config(self, config_id: str, org_id: str = "") -> Optional[ApiConfig]: ...

    async def upsert_config(self, config_id: str, config: ApiConfig, org_id: str = "") -> ApiConfig: ...

    async def create_run(self, run: RunRecord, org_id: str = "") -> RunRecord: ...

    async def get_run(self, run_id: str, org_id: str = "") -> Optional[RunRecord]: ...

    async def list_runs(self, config_id: Optional[str] = None, org_id: str = "", limit: int = 10) -> list[RunRecord]: ...

    async def get_integration(self, integration_id: str, org_id: str = "") -> Optional[Integration]: ...

    async def upsert_integration(self, integration_id: str, integration: Integration, org_id: str = "") -> Integration: ...

    async def get_transform_config(self, transform_id: str, org_id: str = "") -> Optional[TransformConfig]: ...

    async def upsert_transform_config(self, transform_id: str, transform: TransformConfig, org_id: str = "") -> TransformConfig: ...


@runtime_checkable
class TransportCaller(Protocol):
    """Performs the actual HTTP/GraphQL call. Raises TransportError on failure."""

    async def call(
        self,
        config: ApiConfig,
        payload: Any,
        credentials: dict[str, str],
        options: RequestOptions,
    ) -> CallResponse: ...


@runtime_checkable
class ConfigSynthesizer(Protocol):
    """Produces candidate configs from failure feedback."""

    async def synthesize(
        self,
        config: ApiConfig,
        documentation: str,
        payload: Any,
        credentials: dict[str, str],
        attempt: int,
        transcript: list[dict[str, Any]],
    ) -> SynthesisResult: ...

    async def generate_loop_selector(
        self,
        step_id: str,
        instruction: str,
        payload_summary: str,
    ) -> Optional[str]: ...

    async def generate_mapping(
        self,
        schema: Optional[dict],
        data: Any,
        instruction: str,
        previous_error: Optional[str] = None,
    ) -> Optional[str]: ...


@runtime_checkable
class ResponseValidator(Protocol):
    """Judges whether a response satisfies the config's intent."""

    async def validate(self, data: Any, schema: Optional[dict], instruction: str) -> ValidationVerdict: ...


@runtime_checkable
class WebhookNotifier(Protocol):
    """Best-effort completion notification. Must not raise."""

    async def notify(
        self,
        url: str,
        run_id: str,
        success: bool,
        data: Any = None,
        error: Optional[str] = None,
    ) -> None: ...
