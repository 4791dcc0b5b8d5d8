"""In-process KeyedStore. Used by tests, the CLI, and single-process deployments."""

import asyncio
from typing import Optional

from tether.types import ApiConfig, Integration, RunRecord, TransformConfig


class MemoryStore:
    """Dict-backed store, org-namespaced, safe for concurrent coroutines.

    Values are deep-copied on the way in and out so that callers cannot
    mutate stored state through a returned object.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._configs: dict[tuple[str, str], ApiConfig] = {}
        self._runs: dict[tuple[str, str], RunRecord] = {}
        self._integrations: dict[tuple[str, str], Integration] = {}
        self._transforms: dict[tuple[str, str], TransformConfig] = {}

    # ── API configs ──

    async def get_config(self, config_id: str, org_id: str = "") -> Optional[ApiConfig]:
        async with self._lock:
            found = self._configs.get((org_id, config_id))
            return found.model_copy(deep=True) if found else None

    async def upsert_config(self, config_id: str, config: ApiConfig, org_id: str = "") -> ApiConfig:
        stored = config.model_copy(update={"id": config_id}, deep=True)
        async with self._lock:
            self._configs[(org_id, config_id)] = stored
        return stored.model_copy(deep=True)

    # ── Runs ──

    async def create_run(self, run: RunRecord, org_id: str = "") -> RunRecord:
        async with self._lock:
            self._runs[(org_id, run.id)] = run.model_copy(deep=True)
        return run

    async def get_run(self, run_id: str, org_id: str = "") -> Optional[RunRecord]:
        async with self._lock:
            found = self._runs.get((org_id, run_id))
            return found.model_copy(deep=True) if found else None

    async def list_runs(self, config_id: Optional[str] = None, org_id: str = "", limit: int = 10) -> list[RunRecord]:
        async with self._lock:
            runs = [
                r for (org, _), r in self._runs.items()
                if org == org_id and (config_id is None or (r.config and r.config.id == config_id))
            ]
        runs.sort(key=lambda r: r.started_at, reverse=True)
        return [r.model_copy(deep=True) for r in runs[:limit]]

    # ── Integrations ──

    async def get_integration(self, integration_id: str, org_id: str = "") -> Optional[Integration]:
        async with self._lock:
            found = self._integrations.get((org_id, integration_id))
            return found.model_copy(deep=True) if found else None

    async def upsert_integration(self, integration_id: str, integration: Integration, org_id: str = "") -> Integration:
        stored = integration.model_copy(update={"id": integration_id}, deep=True)
        async with self._lock:
            self._integrations[(org_id, integration_id)] = stored
        return stored.model_copy(deep=True)

    # ── Transform cache ──

    async def get_transform_config(self, transform_id: str, org_id: str = "") -> Optional[TransformConfig]:
        async with self._lock:
            found = self._transforms.get((org_id, transform_id))
            return found.model_copy(deep=True) if found else None

    async def upsert_transform_config(self, transform_id: str, transform: TransformConfig, org_id: str = "") -> TransformConfig:
        stored = transform.model_copy(update={"id": transform_id}, deep=True)
        async with self._lock:
            self._transforms[(org_id, transform_id)] = stored
        return stored.model_copy(deep=True)
