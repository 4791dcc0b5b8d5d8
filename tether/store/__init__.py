"""KeyedStore implementations."""

from tether.store.memory import MemoryStore
from tether.store.redis_store import RedisStore

__all__ = ["MemoryStore", "RedisStore"]
