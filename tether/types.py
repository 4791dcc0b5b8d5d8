"""All shared types, enums, and type aliases. Everything imports from here."""

from enum import Enum
from typing import Any, Optional
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field
import uuid


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Enums ──────────────────────────────────────────────────────────────

class ExecutionMode(str, Enum):
    DIRECT = "DIRECT"   # one call per step
    LOOP = "LOOP"       # one call per extracted item

class SelfHealingMode(str, Enum):
    DISABLED = "DISABLED"
    ENABLED = "ENABLED"
    REQUEST_ONLY = "REQUEST_ONLY"

class CacheMode(str, Enum):
    DISABLED = "DISABLED"
    ENABLED = "ENABLED"       # read + write
    READONLY = "READONLY"
    WRITEONLY = "WRITEONLY"

class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


# ── Call configuration ─────────────────────────────────────────────────

class ApiConfig(BaseModel):
    """How to call one external API endpoint, plus what the call is for."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    url_host: str = ""
    url_path: str = ""
    method: HttpMethod = HttpMethod.GET
    instruction: str = ""               # natural-language intent of the call
    headers: dict[str, str] = Field(default_factory=dict)
    query_params: dict[str, Any] = Field(default_factory=dict)
    body: Optional[str] = None          # may contain {{variable}} placeholders
    data_path: Optional[str] = None     # JMESPath into the response body
    response_schema: Optional[Any] = None   # plain JSON Schema only
    response_mapping: Optional[str] = None  # JMESPath applied after the call
    documentation_url: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: Optional[datetime] = None

class ExecutionStep(BaseModel):
    """One step of a workflow: an API config plus how to execute it."""
    id: str
    api_config: ApiConfig
    execution_mode: ExecutionMode = ExecutionMode.DIRECT
    loop_selector: Optional[str] = None
    loop_max_iters: Optional[int] = Field(default=None, ge=1)
    response_mapping: Optional[str] = None  # legacy, applied per call result
    integration_id: Optional[str] = None

class RequestOptions(BaseModel):
    """Per-call options. Treated as immutable; copy with model_copy()."""
    model_config = ConfigDict(frozen=True)

    self_healing: Optional[SelfHealingMode] = None
    cache_mode: Optional[CacheMode] = None
    retries: Optional[int] = Field(default=None, ge=1)
    webhook_url: Optional[str] = None
    test_mode: bool = False
    timeout: Optional[float] = None     # seconds, transport only

class Metadata(BaseModel):
    """Run and organization ids. Logging and telemetry only."""
    run_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    org_id: str = ""

class Integration(BaseModel):
    """A named external system with optional documentation for healing."""
    id: str
    name: str = ""
    url_host: str = ""
    documentation: str = ""
    documentation_pending: bool = False
    credentials: dict[str, str] = Field(default_factory=dict)
    updated_at: Optional[datetime] = None


# ── Results ────────────────────────────────────────────────────────────

class CallResponse(BaseModel):
    """What the transport returns for one HTTP call."""
    data: Any = None
    status_code: int = 200
    headers: dict[str, str] = Field(default_factory=dict)

class ApiCallResult(BaseModel):
    """Outcome of the self-healing executor: response data and the config that produced it."""
    data: Any = None
    config: ApiConfig

class WorkflowStepResult(BaseModel):
    """Result of executing one step. success=True implies error is None."""
    step_id: str
    success: bool = False
    raw_data: Any = None
    transformed_data: Any = None
    config: Optional[ApiConfig] = None
    error: Optional[str] = None

class SynthesisResult(BaseModel):
    """Candidate config plus the updated conversation transcript."""
    config: ApiConfig
    transcript: list[dict[str, Any]] = Field(default_factory=list)

class ValidationVerdict(BaseModel):
    success: bool
    short_reason: str = ""

class TransformResult(BaseModel):
    success: bool
    data: Any = None
    error: Optional[str] = None

class TransformConfig(BaseModel):
    """Cached response mapping for an (instruction, schema) pair."""
    id: str
    instruction: str = ""
    response_schema: Optional[Any] = None
    response_mapping: Optional[str] = None
    updated_at: datetime = Field(default_factory=_utcnow)

class RunRecord(BaseModel):
    """Persisted outcome of one orchestrated call."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    org_id: str = ""
    success: bool
    config: Optional[ApiConfig] = None
    error: Optional[str] = None
    started_at: datetime
    completed_at: datetime = Field(default_factory=_utcnow)

class CallResult(BaseModel):
    """What the call orchestrator hands back to its caller."""
    id: str
    success: bool
    data: Any = None
    config: Optional[ApiConfig] = None
    error: Optional[str] = None
    started_at: datetime
    completed_at: datetime
