"""Step execution strategies: Direct (one call) and Loop (one call per item).

Both strategies catch every failure at their boundary and return a
WorkflowStepResult with success=False; nothing propagates to the caller.
"""

import json
import logging
from typing import Any, Optional, Union

from tether.callbacks.base import dispatch
from tether.config import TetherConfig, config as default_config
from tether.credentials import mask_error
from tether.exceptions import ConfigurationError, ExtractionError, SynthesisError, TetherError
from tether.execution.executor import SelfHealingExecutor
from tether.interfaces import ConfigSynthesizer
from tether.transform import IDENTITY, TransformFacade, flatten_object
from tether.types import (
    ApiConfig, ExecutionMode, ExecutionStep, Integration, Metadata, RequestOptions,
    WorkflowStepResult,
)

logger = logging.getLogger(__name__)

ITEM_KEY = "currentItem"


class DirectStrategy:
    """Calls the step's API once through the self-healing executor."""

    def __init__(
        self,
        executor: SelfHealingExecutor,
        transform: Optional[TransformFacade] = None,
        callbacks: Optional[list] = None,
        config: Optional[TetherConfig] = None,
    ):
        self.executor = executor
        self.transform = transform or TransformFacade()
        self.callbacks = callbacks or []
        self._config = config or default_config

    async def execute(
        self,
        step: ExecutionStep,
        payload: Any,
        credentials: dict[str, str],
        options: Optional[RequestOptions] = None,
        metadata: Optional[Metadata] = None,
        integration: Optional[Integration] = None,
    ) -> WorkflowStepResult:
        metadata = metadata or Metadata()
        try:
            call = await self.executor.execute_api_call(
                step.api_config, payload, credentials, options, metadata, integration
            )
            transformed = self.transform.apply(call.data, step.response_mapping)
            result = WorkflowStepResult(
                step_id=step.id,
                success=True,
                raw_data=call.data,
                transformed_data=transformed,
                config=call.config,
            )
        except Exception as exc:
            masked = mask_error(exc, credentials, self._config.max_error_length)
            result = WorkflowStepResult(
                step_id=step.id,
                success=False,
                config=step.api_config,
                error=f"Error in direct execution for step {step.id}: {masked}",
            )

        logger.info(
            f"[Direct] Step '{step.id}' completed (success={result.success}, "
            f"run={metadata.run_id}, org={metadata.org_id})"
        )
        await dispatch(self.callbacks, "on_step_complete", result, metadata)
        return result


class LoopStrategy:
    """Calls the step's API once per item extracted from the payload.

    The first config that succeeds becomes the learned config for every
    later item. A failing item aborts the loop and discards earlier results.
    """

    def __init__(
        self,
        executor: SelfHealingExecutor,
        transform: Optional[TransformFacade] = None,
        synthesizer: Optional[ConfigSynthesizer] = None,
        callbacks: Optional[list] = None,
        config: Optional[TetherConfig] = None,
    ):
        self.executor = executor
        self.transform = transform or TransformFacade()
        self.synthesizer = synthesizer or executor.synthesizer
        self.callbacks = callbacks or []
        self._config = config or default_config

    async def execute(
        self,
        step: ExecutionStep,
        payload: Any,
        credentials: dict[str, str],
        options: Optional[RequestOptions] = None,
        metadata: Optional[Metadata] = None,
        integration: Optional[Integration] = None,
    ) -> WorkflowStepResult:
        metadata = metadata or Metadata()
        options = (options or RequestOptions()).model_copy(update={"test_mode": False})
        try:
            selector = self._resolve_selector(step, payload)
            try:
                items = await self._extract(step, selector, payload)
            except ExtractionError as exc:
                logger.info(f"[Loop] {exc} (run={metadata.run_id})")
                items = []

            max_iters = step.loop_max_iters or self._config.default_loop_max_iters
            if len(items) > max_iters:
                logger.info(f"[Loop] Step '{step.id}': capping {len(items)} items to {max_iters}")
                items = items[:max_iters]

            learned, raw, transformed = await self._iterate(
                step, items, payload, credentials, options, metadata, integration
            )
            result = WorkflowStepResult(
                step_id=step.id,
                success=True,
                raw_data=raw,
                transformed_data=transformed,
                config=learned,
            )
        except Exception as exc:
            result = WorkflowStepResult(
                step_id=step.id,
                success=False,
                config=step.api_config,
                error=mask_error(exc, credentials, self._config.max_error_length),
            )

        logger.info(
            f"[Loop] Step '{step.id}' completed (success={result.success}, "
            f"run={metadata.run_id}, org={metadata.org_id})"
        )
        await dispatch(self.callbacks, "on_step_complete", result, metadata)
        return result

    def _resolve_selector(self, step: ExecutionStep, payload: Any) -> str:
        if step.loop_selector:
            return step.loop_selector
        if isinstance(payload, list):
            logger.info(f"[Loop] Step '{step.id}' has no loop_selector; iterating the payload itself")
            return IDENTITY
        raise ConfigurationError(
            f"loop_selector is required for LOOP execution mode (step '{step.id}')"
        )

    async def _extract(self, step: ExecutionStep, selector: str, payload: Any) -> list:
        """Extract loop items, regenerating the selector once if nothing comes back.

        Raises:
            ExtractionError: still no items after the single regeneration.
        """
        items = self.transform.extract_items(payload, selector)
        if items:
            return items

        logger.info(f"[Loop] Selector '{selector}' for step '{step.id}' found no items; regenerating")
        try:
            regenerated = await self.synthesizer.generate_loop_selector(
                step.id, step.api_config.instruction, _summarize_payload(payload)
            )
        except SynthesisError as exc:
            logger.warning(f"[Loop] Selector regeneration failed for step '{step.id}': {exc}")
            regenerated = None

        if regenerated:
            items = self.transform.extract_items(payload, regenerated)
            if items:
                return items
            selector = regenerated
        raise ExtractionError(
            f"No items extracted for step '{step.id}' with selector '{selector}'; running zero iterations",
            selector=selector,
        )

    async def _iterate(
        self,
        step: ExecutionStep,
        items: list,
        payload: Any,
        credentials: dict[str, str],
        options: RequestOptions,
        metadata: Metadata,
        integration: Optional[Integration],
    ) -> tuple[ApiConfig, list, list]:
        """Fold over the items, threading the learned config through each call."""
        learned: Optional[ApiConfig] = None
        raw: list = []
        transformed: list = []
        total = len(items)
        base = _base_payload(payload)

        for index, item in enumerate(items):
            if item is None:
                item = ""
            iteration_payload = {**base, **flatten_object(item, ITEM_KEY), ITEM_KEY: item}
            try:
                call = await self.executor.execute_api_call(
                    learned or step.api_config,
                    iteration_payload,
                    credentials,
                    options,
                    metadata,
                    integration,
                )
                if learned is None or call.config != learned:
                    logger.debug(f"[Loop] Step '{step.id}' learned a config at item {index + 1}")
                learned = call.config

                body = call.data if isinstance(call.data, dict) else {"data": call.data}
                item_raw = {ITEM_KEY: item, **body}
                raw.append(item_raw)
                transformed.append(self.transform.apply(item_raw, step.response_mapping))
            except Exception as exc:
                rendered = json.dumps(item, default=str)[:50]
                masked = mask_error(exc, credentials, self._config.max_error_length)
                raise TetherError(
                    f"Error processing item {index + 1}/{total} '{rendered}...': {masked}"
                ) from exc

        return learned or step.api_config, raw, transformed


def _base_payload(payload: Any) -> dict[str, Any]:
    """Outer payload merged into every iteration. List payloads are keyed by index."""
    if isinstance(payload, dict):
        return payload
    if isinstance(payload, list):
        return {str(i): value for i, value in enumerate(payload)}
    return {}


Strategy = Union[DirectStrategy, LoopStrategy]


def select_strategy(step: ExecutionStep, direct: DirectStrategy, loop: LoopStrategy) -> Strategy:
    """Map a step's execution mode to its strategy."""
    match step.execution_mode:
        case ExecutionMode.LOOP:
            return loop
        case _:
            return direct


def _summarize_payload(payload: Any) -> str:
    """Describe each top-level payload key by type and size, never by content."""
    if isinstance(payload, dict):
        lines = []
        for key, value in payload.items():
            if isinstance(value, list):
                lines.append(f"- {key}: array ({len(value)} items)")
            elif isinstance(value, dict):
                lines.append(f"- {key}: object ({len(value)} keys: {', '.join(list(value)[:10])})")
            elif isinstance(value, str):
                lines.append(f"- {key}: string ({len(value)} chars)")
            else:
                lines.append(f"- {key}: {type(value).__name__}")
        return "\n".join(lines) or "(empty object)"
    if isinstance(payload, list):
        return f"array ({len(payload)} items)"
    return type(payload).__name__


class StepRunner:
    """Runs an ExecutionStep with the strategy its execution mode selects."""

    def __init__(self, direct: DirectStrategy, loop: LoopStrategy):
        self.direct = direct
        self.loop = loop

    async def run(
        self,
        step: ExecutionStep,
        payload: Any,
        credentials: dict[str, str],
        options: Optional[RequestOptions] = None,
        metadata: Optional[Metadata] = None,
        integration: Optional[Integration] = None,
    ) -> WorkflowStepResult:
        strategy = select_strategy(step, self.direct, self.loop)
        return await strategy.execute(step, payload, credentials, options, metadata, integration)
