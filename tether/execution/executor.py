"""SelfHealingExecutor — runs one API call through a bounded repair loop.

Attempt 0 always uses the supplied config as-is. From attempt 1 on, when
self-healing is enabled, the synthesizer proposes a new config from the
failure transcript and the response is validated before it is accepted.

The loop body is a pure transition over an immutable _AttemptState: each
attempt receives the previous state by value and returns the next one.
"""

import json
import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from tether.callbacks.base import dispatch
from tether.config import TetherConfig, config as default_config
from tether.credentials import mask_error
from tether.exceptions import ResponseValidationError, RetryExhaustedError, TransportError
from tether.interfaces import ConfigSynthesizer, ResponseValidator, TransportCaller
from tether.llm.prompts import MAPPING_GUIDE
from tether.types import (
    ApiCallResult, ApiConfig, Integration, Metadata, RequestOptions, SelfHealingMode,
)

logger = logging.getLogger(__name__)

NO_DATA_ERROR = "No data returned from API. This could be due to a configuration error."


def is_self_healing_enabled(options: Optional[RequestOptions]) -> bool:
    """Unset means enabled; otherwise only ENABLED and REQUEST_ONLY enable healing."""
    if options is None or options.self_healing is None:
        return True
    return options.self_healing in (SelfHealingMode.ENABLED, SelfHealingMode.REQUEST_ONLY)


class _AttemptState(BaseModel):
    """State threaded from one attempt to the next."""
    model_config = ConfigDict(frozen=True)

    attempt: int = 0
    config: ApiConfig
    transcript: tuple[dict[str, Any], ...] = ()
    last_error: Optional[str] = None
    guide_sent: bool = False
    success: bool = False
    data: Any = None


def _is_empty(data: Any) -> bool:
    """A missing body or an empty string. Empty collections are data."""
    return data is None or data == ""


class SelfHealingExecutor:
    """Executes an ApiConfig with feedback-driven config regeneration.

    Usage:
        executor = SelfHealingExecutor(transport, synthesizer, validator)
        result = await executor.execute_api_call(config, payload, credentials, options)
        result.data, result.config
    """

    def __init__(
        self,
        transport: TransportCaller,
        synthesizer: ConfigSynthesizer,
        validator: ResponseValidator,
        callbacks: Optional[list] = None,
        config: Optional[TetherConfig] = None,
    ):
        self.transport = transport
        self.synthesizer = synthesizer
        self.validator = validator
        self.callbacks = callbacks or []
        self._config = config or default_config

    async def execute_api_call(
        self,
        config: ApiConfig,
        payload: Any,
        credentials: dict[str, str],
        options: Optional[RequestOptions] = None,
        metadata: Optional[Metadata] = None,
        integration: Optional[Integration] = None,
    ) -> ApiCallResult:
        """Call the API, regenerating the config on failure until it works.

        Args:
            config:      Starting config. Used verbatim on attempt 0.
            payload:     Request payload (template variables).
            credentials: Secret name → value; used for substitution and masking.
            options:     Request options (self-healing mode, retry budget).
            metadata:    Run/org ids for logging and telemetry.
            integration: Optional source of documentation for the synthesizer.

        Returns:
            ApiCallResult with the response data and the config that produced it.

        Raises:
            RetryExhaustedError: no validated response within the retry budget.
        """
        options = options or RequestOptions()
        metadata = metadata or Metadata()
        credentials = credentials or {}
        retries = options.retries or self._config.default_retries
        healing = is_self_healing_enabled(options)
        documentation = self._documentation(integration, metadata)

        state = _AttemptState(config=config)
        while state.attempt < retries and not state.success:
            state = await self._attempt(
                state, payload, credentials, options, metadata, documentation, healing
            )

        if state.success:
            return ApiCallResult(data=state.data, config=state.config)

        message = f"API call failed after {retries} retries. Last error: {state.last_error}"
        error = RetryExhaustedError(message, retries=retries, last_error=state.last_error or "")
        logger.error(f"[Executor] {message} (run={metadata.run_id}, org={metadata.org_id})")
        await dispatch(
            self.callbacks,
            "capture_exception",
            error,
            metadata.org_id,
            {
                "endpoint": f"{state.config.url_host}{state.config.url_path}",
                "retries": retries,
                "run_id": metadata.run_id,
            },
        )
        raise error

    async def _attempt(
        self,
        state: _AttemptState,
        payload: Any,
        credentials: dict[str, str],
        options: RequestOptions,
        metadata: Metadata,
        documentation: str,
        healing: bool,
    ) -> _AttemptState:
        """Run one attempt and return the next state."""
        config = state.config
        transcript = list(state.transcript)
        try:
            if state.attempt > 0 and healing:
                logger.info(f"[Executor] Generating API config for {config.url_host} ({state.attempt})")
                synthesized = await self.synthesizer.synthesize(
                    config, documentation, payload, credentials, state.attempt, transcript
                )
                config = synthesized.config
                transcript = list(synthesized.transcript)

            response = await self.transport.call(config, payload, credentials, options)
            if _is_empty(response.data):
                raise TransportError(NO_DATA_ERROR, status_code=response.status_code)

            if state.attempt > 0 and healing:
                verdict = await self.validator.validate(
                    response.data, config.response_schema, config.instruction
                )
                if not verdict.success:
                    rendered = json.dumps(response.data, default=str)[:1000]
                    raise ResponseValidationError(
                        f"{verdict.short_reason} {rendered}", short_reason=verdict.short_reason
                    )

            return state.model_copy(update={
                "attempt": state.attempt + 1,
                "config": config,
                "transcript": tuple(transcript),
                "success": True,
                "data": response.data,
            })

        except Exception as exc:
            masked = mask_error(exc, credentials, self._config.max_error_length)
            if state.attempt == 0:
                logger.info(
                    f"[Executor] The initial configuration is not valid. Generating a new configuration. "
                    f"Error: {masked} (run={metadata.run_id})"
                )
            else:
                logger.warning(
                    f"[Executor] Attempt {state.attempt} failed for {config.url_host}: {masked}"
                )
            transcript.append({"role": "user", "content": f"There was an error with the configuration: {masked}"})
            guide_sent = state.guide_sent
            if masked.startswith("JMESPath") and not guide_sent:
                transcript.append({"role": "user", "content": MAPPING_GUIDE})
                guide_sent = True
            return state.model_copy(update={
                "attempt": state.attempt + 1,
                "config": config,
                "transcript": tuple(transcript),
                "last_error": masked,
                "guide_sent": guide_sent,
            })

    def _documentation(self, integration: Optional[Integration], metadata: Metadata) -> str:
        if integration is None:
            logger.debug(f"[Executor] No integration supplied; healing without documentation (run={metadata.run_id})")
            return ""
        if integration.documentation_pending:
            logger.warning(
                f"[Executor] Documentation for integration {integration.id} is still being fetched; "
                f"proceeding without it (run={metadata.run_id})"
            )
            return ""
        return integration.documentation[: self._config.documentation_max_chars]
