"""Org-namespaced Redis KeyedStore.

Keys:
    tether:<org>:api:<config_id>
    tether:<org>:run:<config_id>:<run_id>
    tether:<org>:integration:<integration_id>
    tether:<org>:transform:<transform_id>

Every value is the model's JSON and carries the configured TTL.
"""

import logging
from typing import Optional, TypeVar

import redis.asyncio as redis
from pydantic import BaseModel, ValidationError

from tether.config import TetherConfig, config as default_config
from tether.exceptions import StoreError
from tether.types import ApiConfig, Integration, RunRecord, TransformConfig

logger = logging.getLogger(__name__)

_API = "api"
_RUN = "run"
_INTEGRATION = "integration"
_TRANSFORM = "transform"

M = TypeVar("M", bound=BaseModel)


class RedisStore:
    """Org-namespaced Redis operations."""

    def __init__(self, config: Optional[TetherConfig] = None, client: Optional[redis.Redis] = None):
        self._config = config or default_config
        if client is not None:
            self.client = client
        else:
            self.pool = redis.ConnectionPool.from_url(self._config.redis_url)
            self.client = redis.Redis(connection_pool=self.pool)

    def _key(self, org_id: str, prefix: str, key: str) -> str:
        """Generate namespaced key."""
        return f"tether:{org_id or 'default'}:{prefix}:{key}"

    async def _get(self, key: str, model: type[M]) -> Optional[M]:
        raw = await self.client.get(key)
        if not raw:
            return None
        try:
            return model.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning(f"[RedisStore] Discarding unreadable value at {key}: {exc}")
            return None

    async def _set(self, key: str, value: BaseModel) -> None:
        try:
            await self.client.set(key, value.model_dump_json(), ex=self._config.store_ttl_seconds)
        except redis.RedisError as exc:
            raise StoreError(f"Redis write failed for {key}: {exc}")

    # ── API configs ──

    async def get_config(self, config_id: str, org_id: str = "") -> Optional[ApiConfig]:
        if not config_id:
            return None
        return await self._get(self._key(org_id, _API, config_id), ApiConfig)

    async def upsert_config(self, config_id: str, config: ApiConfig, org_id: str = "") -> ApiConfig:
        stored = config.model_copy(update={"id": config_id})
        await self._set(self._key(org_id, _API, config_id), stored)
        return stored

    # ── Runs ──

    async def create_run(self, run: RunRecord, org_id: str = "") -> RunRecord:
        config_id = run.config.id if run.config else "none"
        await self._set(self._key(org_id, _RUN, f"{config_id}:{run.id}"), run)
        return run

    async def get_run(self, run_id: str, org_id: str = "") -> Optional[RunRecord]:
        async for key in self.client.scan_iter(match=self._key(org_id, _RUN, f"*:{run_id}")):
            return await self._get(key, RunRecord)
        return None

    async def list_runs(self, config_id: Optional[str] = None, org_id: str = "", limit: int = 10) -> list[RunRecord]:
        pattern = self._key(org_id, _RUN, f"{config_id}:*" if config_id else "*")
        runs: list[RunRecord] = []
        async for key in self.client.scan_iter(match=pattern):
            run = await self._get(key, RunRecord)
            if run is not None:
                runs.append(run)
        runs.sort(key=lambda r: r.started_at, reverse=True)
        return runs[:limit]

    # ── Integrations ──

    async def get_integration(self, integration_id: str, org_id: str = "") -> Optional[Integration]:
        if not integration_id:
            return None
        return await self._get(self._key(org_id, _INTEGRATION, integration_id), Integration)

    async def upsert_integration(self, integration_id: str, integration: Integration, org_id: str = "") -> Integration:
        stored = integration.model_copy(update={"id": integration_id})
        await self._set(self._key(org_id, _INTEGRATION, integration_id), stored)
        return stored

    # ── Transform cache ──

    async def get_transform_config(self, transform_id: str, org_id: str = "") -> Optional[TransformConfig]:
        return await self._get(self._key(org_id, _TRANSFORM, transform_id), TransformConfig)

    async def upsert_transform_config(self, transform_id: str, transform: TransformConfig, org_id: str = "") -> TransformConfig:
        stored = transform.model_copy(update={"id": transform_id})
        await self._set(self._key(org_id, _TRANSFORM, transform_id), stored)
        return stored

    async def health(self) -> bool:
        """Check Redis connectivity."""
        try:
            await self.client.ping()
            return True
        except redis.RedisError:
            return False

    async def close(self):
        """Close connections."""
        await self.client.aclose()
