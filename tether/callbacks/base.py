"""Base callback protocol for tether lifecycle hooks and telemetry.

Callbacks are called at key points in step and call execution. Implement
this protocol to observe or instrument tether without modifying core logic.
Telemetry sinks (error trackers, metrics) plug in here.

Usage:
    class MyCallback(BaseCallback):
        async def capture_exception(self, error, org_id, context, **kw):
            sentry_sdk.capture_exception(error)

    executor = SelfHealingExecutor(..., callbacks=[MyCallback()])
"""

import logging
from typing import Any, Protocol, runtime_checkable

from tether.types import Metadata, RunRecord, WorkflowStepResult

logger = logging.getLogger(__name__)


@runtime_checkable
class TetherCallback(Protocol):
    """Protocol defining hooks for tether lifecycle events.

    All methods are async; the core awaits each registered callback in order.
    """

    async def on_step_complete(
        self,
        result: WorkflowStepResult,
        metadata: Metadata,
        **kwargs: Any,
    ) -> None:
        """Called when a Direct or Loop step finishes (success or failure)."""
        ...

    async def on_run_created(
        self,
        run: RunRecord,
        **kwargs: Any,
    ) -> None:
        """Called after the orchestrator persists a run record."""
        ...

    async def capture_exception(
        self,
        error: Exception,
        org_id: str,
        context: dict[str, Any],
        **kwargs: Any,
    ) -> None:
        """Called when the self-healing executor exhausts its retries."""
        ...


class BaseCallback:
    """Concrete base with no-op implementations of all hooks."""

    async def on_step_complete(
        self, result: WorkflowStepResult, metadata: Metadata, **kwargs: Any
    ) -> None:
        pass

    async def on_run_created(self, run: RunRecord, **kwargs: Any) -> None:
        pass

    async def capture_exception(
        self, error: Exception, org_id: str, context: dict[str, Any], **kwargs: Any
    ) -> None:
        pass


async def dispatch(callbacks: list, hook: str, *args: Any, **kwargs: Any) -> None:
    """Invoke *hook* on every callback that defines it.

    Callback failures are logged and swallowed: telemetry must never change
    the outcome of a call.
    """
    for cb in callbacks or []:
        fn = getattr(cb, hook, None)
        if fn is None:
            continue
        try:
            await fn(*args, **kwargs)
        except Exception as cb_exc:
            logger.warning(f"[Callbacks] {type(cb).__name__}.{hook} failed: {cb_exc}")
