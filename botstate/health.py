"""Composite health check across the enabled backends.

Health checks never raise: an adapter whose ``ping()`` misbehaves is reported as
down, so a health endpoint can always render a response.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from loguru import logger

from botstate.models import HealthResult

if TYPE_CHECKING:
    from botstate.store.base import CacheStore, DurableStore


async def _ping(name: str, backend: DurableStore | CacheStore) -> bool:
    try:
        return bool(await backend.ping())
    except Exception as e:  # noqa: BLE001
        logger.warning("Health: {} ping raised: {!r}", name, e)
        return False


async def check_health(durable: DurableStore, cache: CacheStore | None = None) -> HealthResult:
    """Ping *durable* and, when given, *cache* concurrently.

    ``overall`` is true iff the durable store is up and the cache is either
    disabled (``None``) or up.
    """
    if cache is None:
        durable_up = await _ping("mongodb", durable)
        return HealthResult(overall=durable_up, durable_store_up=durable_up)

    durable_up, cache_up = await asyncio.gather(_ping("mongodb", durable), _ping("redis", cache))
    return HealthResult(overall=durable_up and cache_up, durable_store_up=durable_up, cache_up=cache_up)
