"""Tests for tether/store — MemoryStore and RedisStore."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as redis

from tether.exceptions import StoreError
from tether.interfaces import KeyedStore
from tether.store import MemoryStore, RedisStore
from tether.types import ApiConfig, Integration, RunRecord, TransformConfig

ORG = "org-store-001"


def _run(run_id, config_id="cfg", minutes_ago=0):
    started = datetime.now(timezone.utc) - timedelta(minutes=minutes_ago)
    return RunRecord(id=run_id, success=True, config=ApiConfig(id=config_id), started_at=started)


# ── MemoryStore ──────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestMemoryStore:

    async def test_satisfies_protocol(self):
        assert isinstance(MemoryStore(), KeyedStore)

    async def test_config_roundtrip_is_org_scoped(self, api_config):
        store = MemoryStore()
        await store.upsert_config("c1", api_config, org_id=ORG)
        assert (await store.get_config("c1", org_id=ORG)).id == "c1"
        assert await store.get_config("c1", org_id="other") is None

    async def test_returned_values_are_copies(self, api_config):
        store = MemoryStore()
        await store.upsert_config("c1", api_config)
        fetched = await store.get_config("c1")
        fetched.headers["X"] = "mutated"
        assert "X" not in (await store.get_config("c1")).headers

    async def test_list_runs_newest_first_and_filtered(self):
        store = MemoryStore()
        await store.create_run(_run("old", minutes_ago=10), ORG)
        await store.create_run(_run("new", minutes_ago=1), ORG)
        await store.create_run(_run("other", config_id="zzz"), ORG)

        runs = await store.list_runs("cfg", ORG)
        assert [r.id for r in runs] == ["new", "old"]
        assert len(await store.list_runs(None, ORG, limit=1)) == 1

    async def test_integrations_and_transforms(self):
        store = MemoryStore()
        await store.upsert_integration("gh", Integration(id="ignored", documentation="docs"), ORG)
        assert (await store.get_integration("gh", ORG)).id == "gh"
        await store.upsert_transform_config("k", TransformConfig(id="k", response_mapping="a"), ORG)
        assert (await store.get_transform_config("k", ORG)).response_mapping == "a"

    async def test_concurrent_writes_are_all_kept(self):
        store = MemoryStore()
        await asyncio.gather(*[
            store.upsert_config(f"c{i}", ApiConfig(), ORG) for i in range(20)
        ])
        for i in range(20):
            assert await store.get_config(f"c{i}", ORG) is not None


# ── RedisStore ───────────────────────────────────────────────────────────────

def _make_redis(values: dict = None):
    """Build a mock redis client backed by a dict."""
    values = dict(values or {})
    client = MagicMock()

    async def _get(key):
        return values.get(key)

    async def _set(key, value, ex=None):
        values[key] = value
        return True

    async def _scan_iter(match=None):
        prefix, _, suffix = match.partition("*")
        for key in list(values):
            if key.startswith(prefix) and key.endswith(suffix):
                yield key

    client.get = AsyncMock(side_effect=_get)
    client.set = AsyncMock(side_effect=_set)
    client.scan_iter = _scan_iter
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    return client, values


@pytest.mark.asyncio
class TestRedisStore:

    async def test_key_namespace(self, config):
        client, _ = _make_redis()
        store = RedisStore(config=config, client=client)
        assert store._key(ORG, "api", "c1") == f"tether:{ORG}:api:c1"
        assert store._key("", "api", "c1") == "tether:default:api:c1"

    async def test_upsert_config_sets_json_with_ttl(self, config, api_config):
        client, values = _make_redis()
        store = RedisStore(config=config, client=client)

        await store.upsert_config("c1", api_config, ORG)

        key = f"tether:{ORG}:api:c1"
        client.set.assert_awaited_once()
        assert client.set.await_args.kwargs["ex"] == config.store_ttl_seconds
        assert ApiConfig.model_validate_json(values[key]).id == "c1"
        assert (await store.get_config("c1", ORG)).url_path == api_config.url_path

    async def test_missing_and_unreadable_values(self, config):
        client, _ = _make_redis({f"tether:{ORG}:api:bad": b"not json"})
        store = RedisStore(config=config, client=client)
        assert await store.get_config("missing", ORG) is None
        assert await store.get_config("bad", ORG) is None
        assert await store.get_config("", ORG) is None

    async def test_run_keys_include_config_id(self, config):
        client, values = _make_redis()
        store = RedisStore(config=config, client=client)

        await store.create_run(_run("r1", config_id="cfg"), ORG)

        assert f"tether:{ORG}:run:cfg:r1" in values
        assert (await store.get_run("r1", ORG)).id == "r1"
        assert await store.get_run("nope", ORG) is None

    async def test_list_runs_by_config(self, config):
        client, _ = _make_redis()
        store = RedisStore(config=config, client=client)
        await store.create_run(_run("a", "cfg", minutes_ago=5), ORG)
        await store.create_run(_run("b", "cfg", minutes_ago=1), ORG)
        await store.create_run(_run("c", "other"), ORG)

        runs = await store.list_runs("cfg", ORG)

        assert [r.id for r in runs] == ["b", "a"]

    async def test_write_failure_raises_store_error(self, config, api_config):
        client, _ = _make_redis()
        client.set = AsyncMock(side_effect=redis.ConnectionError("down"))
        store = RedisStore(config=config, client=client)
        with pytest.raises(StoreError):
            await store.upsert_config("c1", api_config, ORG)

    async def test_health(self, config):
        client, _ = _make_redis()
        store = RedisStore(config=config, client=client)
        assert await store.health() is True
        client.ping = AsyncMock(side_effect=redis.ConnectionError("down"))
        assert await store.health() is False
