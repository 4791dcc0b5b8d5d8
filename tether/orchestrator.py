"""CallOrchestrator — the top-level entry point for one API call.

resolve config → reject unsupported schema → self-healing executor →
post-call transform (cache-aware) → webhook → persisted run record.

Never raises: every failure becomes a CallResult with success=False and a
credential-masked error.
"""

import logging
import uuid
from typing import Any, Optional

from pydantic import BaseModel

from tether.callbacks.base import dispatch
from tether.config import TetherConfig, config as default_config
from tether.credentials import mask_error, sanitize_config
from tether.exceptions import ConfigurationError
from tether.execution.executor import SelfHealingExecutor
from tether.execution.transform import execute_transform
from tether.interfaces import ConfigSynthesizer, KeyedStore, WebhookNotifier
from tether.transform import TransformFacade
from tether.types import (
    ApiConfig, CacheMode, CallResult, Integration, Metadata, RequestOptions, RunRecord, _utcnow,
)

logger = logging.getLogger(__name__)


def reads_cache(options: RequestOptions) -> bool:
    return options.cache_mode is None or options.cache_mode in (CacheMode.ENABLED, CacheMode.READONLY)


def writes_cache(options: RequestOptions) -> bool:
    return options.cache_mode in (CacheMode.ENABLED, CacheMode.WRITEONLY)


def check_response_schema(schema: Any) -> None:
    """Only plain JSON Schema dicts are accepted.

    Raises:
        ConfigurationError: a pydantic model, a zod-style ``_def`` marker, or
            any other non-dict schema representation.
    """
    if schema is None:
        return
    if isinstance(schema, BaseModel) or (isinstance(schema, type) and issubclass(schema, BaseModel)):
        raise ConfigurationError(
            "response_schema must be plain JSON Schema; pydantic models are not supported. "
            "Use Model.model_json_schema() instead."
        )
    if isinstance(schema, dict) and "_def" in schema:
        type_name = schema["_def"].get("typeName", "unknown") if isinstance(schema["_def"], dict) else "unknown"
        raise ConfigurationError(
            f"response_schema must be plain JSON Schema; got a {type_name} schema object."
        )
    if not isinstance(schema, dict):
        raise ConfigurationError(
            f"response_schema must be plain JSON Schema; got {type(schema).__name__}."
        )


def _persistable(config: Optional[ApiConfig]) -> Optional[ApiConfig]:
    """Drop a rejected non-JSON schema so the config can be serialized."""
    if config is None or config.response_schema is None or isinstance(config.response_schema, dict):
        return config
    return config.model_copy(update={"response_schema": None})


class CallOrchestrator:
    """Resolves, executes, shapes, persists and announces one API call.

    Usage:
        orchestrator = CallOrchestrator(store, executor, synthesizer=synth, webhook=notifier)
        result = await orchestrator.call(endpoint_id="list-users", payload={}, credentials={...})
    """

    def __init__(
        self,
        store: KeyedStore,
        executor: SelfHealingExecutor,
        transform: Optional[TransformFacade] = None,
        synthesizer: Optional[ConfigSynthesizer] = None,
        webhook: Optional[WebhookNotifier] = None,
        callbacks: Optional[list] = None,
        config: Optional[TetherConfig] = None,
    ):
        self.store = store
        self.executor = executor
        self.transform = transform or TransformFacade()
        self.synthesizer = synthesizer or executor.synthesizer
        self.webhook = webhook
        self.callbacks = callbacks or []
        self._config = config or default_config

    async def _resolve(self, endpoint: Optional[ApiConfig], endpoint_id: Optional[str], org_id: str) -> ApiConfig:
        if endpoint_id:
            found = await self.store.get_config(endpoint_id, org_id)
            if found is None:
                raise ConfigurationError(f"No config found for id '{endpoint_id}'")
            return found
        if endpoint is not None:
            return endpoint
        raise ConfigurationError("Either an inline endpoint config or an endpoint_id is required")

    async def call(
        self,
        endpoint: Optional[ApiConfig] = None,
        endpoint_id: Optional[str] = None,
        payload: Any = None,
        credentials: Optional[dict[str, str]] = None,
        options: Optional[RequestOptions] = None,
        org_id: str = "",
        integration_id: Optional[str] = None,
    ) -> CallResult:
        """Execute one orchestrated call.

        Args:
            endpoint:       Inline config (used when endpoint_id is not given).
            endpoint_id:    Id of a stored config.
            payload:        Request payload.
            credentials:    Secret name → value.
            options:        Request options (healing, cache mode, webhook).
            org_id:         Organization namespace for store keys.
            integration_id: Optional integration supplying documentation.

        Returns:
            CallResult. Never raises.
        """
        started_at = _utcnow()
        run_id = str(uuid.uuid4())
        credentials = credentials or {}
        options = options or RequestOptions()
        metadata = Metadata(run_id=run_id, org_id=org_id)
        payload = payload if payload is not None else {}

        config: Optional[ApiConfig] = endpoint
        data: Any = None
        error: Optional[str] = None
        success = False

        try:
            config = await self._resolve(endpoint, endpoint_id, org_id)
            check_response_schema(config.response_schema)

            integration: Optional[Integration] = None
            if integration_id:
                integration = await self.store.get_integration(integration_id, org_id)

            call = await self.executor.execute_api_call(
                config, payload, credentials, options, metadata, integration
            )
            config = call.config

            data, transform_config = await execute_transform(
                self.store,
                self.transform,
                self.synthesizer,
                config,
                call.data,
                metadata,
                from_cache=reads_cache(options),
                retries=options.retries or self._config.default_retries,
            )
            config = config.model_copy(update={
                "response_mapping": transform_config.response_mapping,
                "updated_at": _utcnow(),
            })

            if writes_cache(options):
                safe = sanitize_config(config, credentials)
                await self.store.upsert_config(endpoint_id or config.id, safe, org_id)
                await self.store.upsert_transform_config(transform_config.id, transform_config, org_id)
                logger.info(f"[Orchestrator] Cached config {endpoint_id or config.id} (run={run_id})")
            success = True
        except Exception as exc:
            error = mask_error(exc, credentials, self._config.max_error_length)
            logger.error(f"[Orchestrator] Call {run_id} failed: {error} (org={org_id})")

        if options.webhook_url:
            try:
                await self.webhook_notify(options.webhook_url, run_id, success, data, error)
            except Exception as exc:
                logger.warning(f"[Orchestrator] Webhook for run {run_id} failed: {mask_error(exc, credentials)}")

        run = RunRecord(
            id=run_id,
            org_id=org_id,
            success=success,
            config=sanitize_config(_persistable(config), credentials),
            error=error,
            started_at=started_at,
            completed_at=_utcnow(),
        )
        try:
            await self.store.create_run(run, org_id)
        except Exception as exc:
            logger.error(f"[Orchestrator] Could not persist run {run_id}: {mask_error(exc, credentials)}")
        await dispatch(self.callbacks, "on_run_created", run)

        return CallResult(
            id=run_id,
            success=success,
            data=data if success else None,
            config=run.config,
            error=error,
            started_at=started_at,
            completed_at=run.completed_at,
        )

    async def webhook_notify(
        self, url: str, run_id: str, success: bool, data: Any, error: Optional[str]
    ) -> None:
        if self.webhook is None:
            logger.warning(f"[Orchestrator] webhook_url set but no notifier configured (run={run_id})")
            return
        await self.webhook.notify(url, run_id, success, data=data if success else None, error=error)
