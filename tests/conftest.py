"""Shared test fixtures.

Unit tests run the orchestrator against in-memory adapters that follow the
``DurableStore`` / ``CacheStore`` protocols (JSON-encoding like the real
backends, with a switch to simulate an outage).

Integration tests use real MongoDB and Redis containers managed by
testcontainers-python.  Containers are session-scoped (started once per test
run) and only started when a test requests them.  Requires Docker; such tests
are marked with ``@pytest.mark.integration``.
"""

from __future__ import annotations

import asyncio
import json
import os
from collections.abc import AsyncIterator, Collection, Iterator, Mapping, Sequence
from typing import Any

import pytest
from pymongo.errors import ServerSelectionTimeoutError
from redis.exceptions import ConnectionError as RedisConnectionError
from testcontainers.mongodb import MongoDbContainer
from testcontainers.redis import RedisContainer

from botstate.errors import BackendConnectionError
from botstate.models import new_version, with_version
from botstate.settings import get_settings
from botstate.store.tiered import TieredStateStore, create_state_store


def _set_env(key: str, value: str) -> None:
    """Set an env var and invalidate the settings cache."""
    os.environ[key] = value
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# In-memory adapters
# ---------------------------------------------------------------------------


class _InMemoryBackend:
    """Common outage / latency switches for the adapter doubles.

    When ``timeline`` is set, every mutating call (and ``connect``) appends
    ``(name, op, "start")`` on entry and ``(name, op, "end")`` once done.
    ``delay`` makes those calls suspend before completing; an unavailable
    backend fails immediately, before the delay.
    """

    name = ""

    def __init__(self) -> None:
        self.available = True
        self.delay = 0.0
        self.timeline: list[tuple[str, str, str]] | None = None
        self.calls: list[tuple[str, Any]] = []

    def _error(self) -> Exception:
        raise NotImplementedError

    async def _enter(self, op: str, error: Exception | None = None) -> None:
        if self.timeline is not None:
            self.timeline.append((self.name, op, "start"))
        if not self.available:
            raise error or self._error()
        if self.delay:
            await asyncio.sleep(self.delay)

    def _leave(self, op: str) -> None:
        if self.timeline is not None:
            self.timeline.append((self.name, op, "end"))

    async def connect(self) -> None:
        await self._enter("connect", BackendConnectionError(self.name, "unavailable"))
        self._leave("connect")

    async def ping(self) -> bool:
        return self.available

    async def close(self) -> None:
        pass


class InMemoryDurableStore(_InMemoryBackend):
    """DurableStore double.  Keeps one JSON document per key."""

    name = "mongodb"

    def __init__(self) -> None:
        super().__init__()
        self.documents: dict[str, dict[str, str]] = {}

    def _error(self) -> Exception:
        return ServerSelectionTimeoutError("durable store unavailable")

    async def find_by_keys(self, keys: Collection[str]) -> dict[str, Any]:
        self.calls.append(("find_by_keys", sorted(keys)))
        await self._enter("find_by_keys")
        return {k: json.loads(self.documents[k]["state"]) for k in keys if k in self.documents}

    async def bulk_upsert(self, items: Mapping[str, Any], versions: Mapping[str, str] | None = None) -> None:
        self.calls.append(("bulk_upsert", sorted(items)))
        await self._enter("bulk_upsert")
        for key, payload in items.items():
            version = (versions or {}).get(key) or new_version()
            self.documents[key] = {"state": json.dumps(with_version(payload, version)), "version": version}
        self._leave("bulk_upsert")

    async def delete_by_keys(self, keys: Collection[str]) -> None:
        self.calls.append(("delete_by_keys", sorted(keys)))
        await self._enter("delete_by_keys")
        for key in keys:
            self.documents.pop(key, None)
        self._leave("delete_by_keys")


class InMemoryCacheStore(_InMemoryBackend):
    """CacheStore double.  Records the TTL of every entry."""

    name = "redis"

    def __init__(self) -> None:
        super().__init__()
        self.entries: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def _error(self) -> Exception:
        return RedisConnectionError("cache unavailable")

    async def get_many(self, keys: Sequence[str]) -> dict[str, Any]:
        self.calls.append(("get_many", list(keys)))
        await self._enter("get_many")
        return {k: json.loads(self.entries[k]) for k in keys if k in self.entries}

    async def set_many(self, items: Mapping[str, Any], ttl_seconds: int) -> None:
        self.calls.append(("set_many", sorted(items)))
        await self._enter("set_many")
        for key, payload in items.items():
            self.entries[key] = json.dumps(payload)
            self.ttls[key] = ttl_seconds
        self._leave("set_many")

    async def delete_many(self, keys: Collection[str]) -> None:
        self.calls.append(("delete_many", sorted(keys)))
        await self._enter("delete_many")
        for key in keys:
            self.entries.pop(key, None)
            self.ttls.pop(key, None)
        self._leave("delete_many")


@pytest.fixture
def durable() -> InMemoryDurableStore:
    return InMemoryDurableStore()


@pytest.fixture
def cache() -> InMemoryCacheStore:
    return InMemoryCacheStore()


@pytest.fixture
async def store(durable: InMemoryDurableStore) -> TieredStateStore:
    """Connected store with the cache tier disabled."""
    s = TieredStateStore(durable)
    await s.connect()
    return s


@pytest.fixture
async def cached_store(durable: InMemoryDurableStore, cache: InMemoryCacheStore) -> TieredStateStore:
    """Connected store with the cache tier enabled."""
    s = TieredStateStore(durable, cache, cache_expiration=60)
    await s.connect()
    return s


# ---------------------------------------------------------------------------
# Session-scoped: containers (started once, shared across all tests)
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def mongo_container() -> Iterator[MongoDbContainer]:
    """Start a MongoDB 7 container for the test session."""
    with MongoDbContainer(image="mongo:7") as mongo:
        yield mongo


@pytest.fixture(scope="session")
def redis_container() -> Iterator[RedisContainer]:
    """Start a Redis 7 container for the test session."""
    with RedisContainer(image="redis:7") as r:
        yield r


@pytest.fixture(scope="session")
def mongo_url(mongo_container: MongoDbContainer) -> str:
    """MongoDB connection URL."""
    url = mongo_container.get_connection_url()
    _set_env("BOTSTATE_MONGO_URI", url)
    return url


@pytest.fixture(scope="session")
def redis_url(redis_container: RedisContainer) -> str:
    """Redis connection URL."""
    host = redis_container.get_container_host_ip()
    port = redis_container.get_exposed_port(6379)
    url = f"redis://{host}:{port}/0"
    _set_env("BOTSTATE_REDIS_URL", url)
    return url


# ---------------------------------------------------------------------------
# Function-scoped: live store with cleanup
# ---------------------------------------------------------------------------


@pytest.fixture
def collection_name(request: pytest.FixtureRequest) -> str:
    """One collection per test so integration tests never share documents."""
    name = "".join(c if c.isalnum() else "_" for c in request.node.name)
    return f"test_{name}"[:100]


@pytest.fixture
async def live_store(mongo_url: str, redis_url: str, collection_name: str) -> AsyncIterator[TieredStateStore]:
    """Connected store against the containers: cache enabled, majority writes.

    Collection dropped and Redis flushed after each test.
    """
    s = create_state_store(
        mongo_url,
        database="botstate_test",
        collection=collection_name,
        redis_options={"url": redis_url},
        safe_writes=True,
    )
    await s.connect()
    yield s
    await s.durable.collection.drop()
    await s.cache.client.flushdb()
    await s.close()
