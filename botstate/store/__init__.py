"""Backend adapters and the tiered orchestrator."""

from botstate.store.base import CacheStore, DurableStore
from botstate.store.mongo import MongoDurableStore
from botstate.store.redis import RedisCacheStore
from botstate.store.tiered import TieredStateStore, create_state_store

__all__ = [
    "CacheStore",
    "DurableStore",
    "MongoDurableStore",
    "RedisCacheStore",
    "TieredStateStore",
    "create_state_store",
]
