"""Cache-aside orchestration over the durable store and the optional cache.

Reads go to the cache first and fall back to one batched durable lookup for
whatever the cache lacks.  A miss is *not* written back to the cache; only
``write`` populates it.  Writes and deletes hit both tiers concurrently and
wait for both.

There is no cross-tier atomicity and no per-key serialization: if one tier
fails mid-write the other keeps its new value, and the error is re-raised
once both sides have settled.  Writes are full replaces, so retrying the
whole call is safe.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, MutableMapping
from typing import TYPE_CHECKING, Any

from loguru import logger

from botstate.errors import ConfigurationError, StoreStateError
from botstate.health import check_health
from botstate.models import VERSION_FIELD, ConnectionStatus, HealthResult, new_version, with_version
from botstate.settings import DEFAULT_CACHE_EXPIRATION
from botstate.store.fanout import settle
from botstate.store.mongo import MongoDurableStore
from botstate.store.redis import RedisCacheStore

if TYPE_CHECKING:
    from botstate.settings import BotStateSettings
    from botstate.store.base import CacheStore, DurableStore


class TieredStateStore:
    """Key-value state store: MongoDB authority plus optional Redis cache.

    Owns both adapters.  ``connect()`` must complete before any
    ``read`` / ``write`` / ``delete``.
    """

    def __init__(
        self,
        durable: DurableStore,
        cache: CacheStore | None = None,
        cache_expiration: int | None = None,
    ) -> None:
        if cache_expiration is None:
            cache_expiration = DEFAULT_CACHE_EXPIRATION
        if cache_expiration <= 0:
            msg = f"cache_expiration must be positive, got {cache_expiration}"
            raise ConfigurationError(msg)

        self._durable = durable
        self._cache = cache
        self._cache_expiration = cache_expiration
        self._connected = False

    @classmethod
    def from_settings(cls, settings: BotStateSettings) -> TieredStateStore:
        """Build a store from ``BOTSTATE_*`` settings.  ``redis_url`` unset disables the cache."""
        return create_state_store(
            settings.mongo_uri or "",
            database=settings.database,
            collection=settings.collection,
            redis_options={"url": settings.redis_url} if settings.redis_url else None,
            cache_expiration=settings.cache_expiration,
            safe_writes=settings.safe_writes,
        )

    # -- Properties ------------------------------------------------------------

    @property
    def is_cache_enabled(self) -> bool:
        return self._cache is not None

    @property
    def cache_expiration(self) -> int:
        return self._cache_expiration

    @property
    def durable(self) -> DurableStore:
        return self._durable

    @property
    def cache(self) -> CacheStore | None:
        return self._cache

    # -- Lifecycle -------------------------------------------------------------

    async def connect(self) -> ConnectionStatus:
        """Connect every configured backend concurrently.

        Raises ``BackendConnectionError`` if either backend fails; a
        configured cache that cannot be reached is not silently dropped.
        """
        if self._connected:
            msg = "connect() has already been called"
            raise StoreStateError(msg)

        connections = [self._durable.connect()]
        if self._cache is not None:
            connections.append(self._cache.connect())
        await settle(*connections)

        self._connected = True
        status = ConnectionStatus(durable_store_up=True, cache_up=True if self._cache is not None else None)
        logger.info("State store: connected (cache={})", "on" if self._cache is not None else "off")
        return status

    async def close(self) -> None:
        closing = [self._durable.close()]
        if self._cache is not None:
            closing.append(self._cache.close())
        await settle(*closing)
        self._connected = False

    def _ensure_connected(self) -> None:
        if not self._connected:
            msg = "State store is not connected; call connect() first"
            raise StoreStateError(msg)

    # -- Read ------------------------------------------------------------------

    async def read(self, keys: Collection[str]) -> dict[str, Any]:
        """Return payloads for the found *keys*.  Unknown keys are absent."""
        if not keys:
            return {}
        self._ensure_connected()
        keys = list(dict.fromkeys(keys))

        if self._cache is None:
            return await self._durable.find_by_keys(keys)

        states = await self._cache.get_many(keys)
        missing = [key for key in keys if key not in states]
        logger.debug("State store: read {} keys ({} cache hits)", len(keys), len(states))
        if missing:
            found = await self._durable.find_by_keys(missing)
            # Cached values win over the durable copy.
            states = {**found, **states}
        return states

    # -- Write -----------------------------------------------------------------

    async def write(self, changes: Mapping[str, Any]) -> None:
        """Replace the payload of every key in *changes* in both tiers.

        Each key gets a fresh version token.  Both tiers receive the same
        stamped copy per key (mapping payloads carry the token under
        ``version``, overwriting any supplied value).  The token is also set on
        the caller's mapping; a mapping passed under several keys ends up with
        the token of the last of them.
        """
        if not changes:
            return
        self._ensure_connected()

        versions = {key: new_version() for key in changes}
        stamped = {key: with_version(payload, versions[key]) for key, payload in changes.items()}
        for key, payload in changes.items():
            if isinstance(payload, MutableMapping):
                payload[VERSION_FIELD] = versions[key]

        operations = [self._durable.bulk_upsert(stamped, versions)]
        if self._cache is not None:
            operations.append(self._cache.set_many(stamped, self._cache_expiration))
        await settle(*operations)

    # -- Delete ----------------------------------------------------------------

    async def delete(self, keys: Collection[str]) -> None:
        """Remove *keys* from both tiers.  Unknown keys are not an error."""
        if not keys:
            return
        self._ensure_connected()
        keys = list(dict.fromkeys(keys))

        operations = [self._durable.delete_by_keys(keys)]
        if self._cache is not None:
            operations.append(self._cache.delete_many(keys))
        await settle(*operations)

    # -- Health ----------------------------------------------------------------

    async def health(self) -> HealthResult:
        """Composite liveness.  Never raises; the cache is only pinged when enabled."""
        return await check_health(self._durable, self._cache)


def create_state_store(
    uri: str,
    *,
    database: str | None = None,
    collection: str | None = None,
    mongo_options: Mapping[str, Any] | None = None,
    redis_options: Mapping[str, Any] | None = None,
    cache_expiration: int | None = None,
    safe_writes: bool = False,
) -> TieredStateStore:
    """Build a store backed by MongoDB and, when *redis_options* is given, Redis.

    Raises ``ConfigurationError`` for a missing URI before any connection is
    attempted.
    """
    durable = MongoDurableStore(
        uri,
        database=database,
        collection=collection,
        safe_writes=safe_writes,
        options=mongo_options,
    )
    cache = RedisCacheStore(redis_options) if redis_options is not None else None
    return TieredStateStore(durable, cache, cache_expiration=cache_expiration)
