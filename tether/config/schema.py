"""Pydantic models for YAML step file validation.

These mirror tether/types.py structures but accept loose string inputs
(e.g., execution_mode: "loop", method: "post") and coerce them to the enums.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from tether.types import ExecutionMode, HttpMethod


class ApiConfigYAML(BaseModel):
    """Validated schema for the api_config block of a step."""

    id: Optional[str] = None
    url_host: str
    url_path: str = ""
    method: HttpMethod = HttpMethod.GET
    instruction: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    query_params: dict[str, Any] = Field(default_factory=dict)
    body: Optional[str] = None
    data_path: Optional[str] = None
    response_schema: Optional[dict[str, Any]] = None
    response_mapping: Optional[str] = None
    documentation_url: Optional[str] = None

    @field_validator("method", mode="before")
    @classmethod
    def coerce_method(cls, v):
        if isinstance(v, str):
            return HttpMethod(v.upper())
        return v


class StepYAML(BaseModel):
    """Validated schema for one entry in steps.yaml."""

    id: str
    api_config: ApiConfigYAML
    execution_mode: ExecutionMode = ExecutionMode.DIRECT
    loop_selector: Optional[str] = None
    loop_max_iters: Optional[int] = Field(default=None, ge=1)
    response_mapping: Optional[str] = None
    integration_id: Optional[str] = None

    @field_validator("execution_mode", mode="before")
    @classmethod
    def coerce_mode(cls, v):
        if isinstance(v, str):
            return ExecutionMode(v.upper())
        return v


class StepsConfig(BaseModel):
    """Root schema for steps.yaml."""
    steps: list[StepYAML] = Field(default_factory=list)
