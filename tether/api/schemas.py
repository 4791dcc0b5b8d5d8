"""Pydantic models for API request/response. Mirrors types.py for API I/O."""

from pydantic import BaseModel, Field
from typing import Any, Optional

from tether.types import ApiConfig, ExecutionStep, RequestOptions, RunRecord


# ── Requests ──

class CallRequest(BaseModel):
    endpoint: Optional[ApiConfig] = None      # inline config
    endpoint_id: Optional[str] = None         # or the id of a stored one
    payload: Any = Field(default_factory=dict)
    credentials: dict[str, str] = Field(default_factory=dict)
    options: RequestOptions = Field(default_factory=RequestOptions)
    integration_id: Optional[str] = None
    org_id: str = ""


class StepExecuteRequest(BaseModel):
    step: ExecutionStep
    payload: Any = Field(default_factory=dict)
    credentials: dict[str, str] = Field(default_factory=dict)
    options: RequestOptions = Field(default_factory=RequestOptions)
    integration_id: Optional[str] = None
    org_id: str = ""


# ── Responses ──

class RunListResponse(BaseModel):
    runs: list[RunRecord]
    total: int


class HealthResponse(BaseModel):
    status: str                     # "ok" or "degraded"
    version: str
    services: dict[str, bool]
