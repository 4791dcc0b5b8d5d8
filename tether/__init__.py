"""tether — self-healing API calls and workflow steps.

Usage:
    from tether.runtime import build_runtime
    from tether import ApiConfig, ExecutionStep

    runtime = build_runtime()
    result = await runtime.orchestrator.call(endpoint=ApiConfig(...), payload={...})
"""

from tether.types import (
    ApiConfig, ExecutionStep, RequestOptions, Metadata, Integration,
    WorkflowStepResult, ApiCallResult, CallResult, RunRecord,
    ExecutionMode, SelfHealingMode, CacheMode, HttpMethod,
)
from tether.exceptions import (
    TetherError, ConfigurationError, TransportError, ResponseValidationError,
    ExtractionError, RetryExhaustedError, TransformError, SynthesisError,
    StoreError,
)
from tether.version import __version__

__all__ = [
    "ApiConfig", "ExecutionStep", "RequestOptions", "Metadata", "Integration",
    "WorkflowStepResult", "ApiCallResult", "CallResult", "RunRecord",
    "ExecutionMode", "SelfHealingMode", "CacheMode", "HttpMethod",
    "TetherError", "ConfigurationError", "TransportError", "ResponseValidationError",
    "ExtractionError", "RetryExhaustedError", "TransformError", "SynthesisError",
    "StoreError",
    "__version__",
]
