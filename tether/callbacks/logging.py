"""Structured JSON logging callback for tether lifecycle events."""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from tether.callbacks.base import BaseCallback
from tether.types import Metadata, RunRecord, WorkflowStepResult

logger = logging.getLogger("tether.audit")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class LoggingCallback(BaseCallback):
    """Emits structured JSON log lines for every lifecycle event.

    Each log line is a self-contained JSON object with:
      - event: event type name
      - ts: ISO-8601 UTC timestamp
      - relevant fields depending on event

    Log level: INFO for normal events, ERROR for captured exceptions.
    Logger name: tether.audit (configure in your logging setup)

    Error strings reaching this callback are already credential-masked.
    """

    async def on_step_complete(
        self, result: WorkflowStepResult, metadata: Metadata, **kwargs: Any
    ) -> None:
        raw = result.raw_data
        logger.info(json.dumps({
            "event": "step_complete",
            "ts": _now(),
            "run_id": metadata.run_id,
            "org_id": metadata.org_id,
            "step_id": result.step_id,
            "success": result.success,
            "items": len(raw) if isinstance(raw, list) else None,
            "error": (result.error or "")[:200],
        }))

    async def on_run_created(self, run: RunRecord, **kwargs: Any) -> None:
        logger.info(json.dumps({
            "event": "run_created",
            "ts": _now(),
            "run_id": run.id,
            "org_id": run.org_id,
            "config_id": run.config.id if run.config else "",
            "success": run.success,
            "duration_ms": int((run.completed_at - run.started_at).total_seconds() * 1000),
        }))

    async def capture_exception(
        self, error: Exception, org_id: str, context: dict[str, Any], **kwargs: Any
    ) -> None:
        logger.error(json.dumps({
            "event": "call_failed",
            "ts": _now(),
            "org_id": org_id,
            "error_type": type(error).__name__,
            "error": str(error),
            "context": {k: str(v)[:200] for k, v in context.items()},
        }))
