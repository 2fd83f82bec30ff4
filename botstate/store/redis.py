"""Redis cache store.

Entries are keyed exactly like the durable store; the value is the JSON text
of the payload and every entry carries a TTL.  The cache is only filled by
``set_many`` (the write path), never on a read miss.
"""

from __future__ import annotations

import json
from collections.abc import Collection, Mapping, Sequence
from typing import Any

import redis.asyncio as aioredis
from loguru import logger
from redis.exceptions import RedisError

from botstate.errors import BackendConnectionError
from botstate.store.fanout import settle


def _create_redis_client(options: Mapping[str, Any]) -> aioredis.Redis:
    """Create a redis-py async client.

    A ``url`` entry is handed to ``from_url``; all other entries are passed
    through as client keyword arguments.
    """
    options = dict(options)
    url = options.pop("url", None)
    if url:
        return aioredis.from_url(url, **options)
    return aioredis.Redis(**options)


class RedisCacheStore:
    """Redis implementation of the CacheStore protocol."""

    def __init__(self, options: Mapping[str, Any] | None = None, client: aioredis.Redis | None = None) -> None:
        self._client = client if client is not None else _create_redis_client(options or {})

    @property
    def client(self) -> aioredis.Redis:
        return self._client

    # -- Lifecycle -------------------------------------------------------------

    async def connect(self) -> None:
        # Connections are pooled and opened lazily; PING forces the first one.
        try:
            await self._client.ping()
        except RedisError as e:
            raise BackendConnectionError("redis", str(e)) from e
        logger.info("Redis: connected")

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("Redis: closed")

    # -- Read ------------------------------------------------------------------

    async def get_many(self, keys: Sequence[str]) -> dict[str, Any]:
        raw = await settle(*(self._client.get(key) for key in keys))
        # A cached JSON null is a hit; only a missing entry is left out.
        return {key: json.loads(value) for key, value in zip(keys, raw, strict=True) if value is not None}

    # -- Write -----------------------------------------------------------------

    async def set_many(self, items: Mapping[str, Any], ttl_seconds: int) -> None:
        if not items:
            return
        await settle(
            *(self._client.set(key, json.dumps(payload), ex=ttl_seconds) for key, payload in items.items())
        )
        logger.debug("Redis: cached {} keys (ttl={}s)", len(items), ttl_seconds)

    async def delete_many(self, keys: Collection[str]) -> None:
        if keys:
            await self._client.delete(*keys)

    # -- Health ----------------------------------------------------------------

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.warning("Redis: ping failed: {}", e)
            return False
