"""Adapter interfaces for the two storage tiers.

The durable store is authoritative: every key the cache lacks is looked up
there.  The cache is optional and only ever populated by the write path, so
its entries are a subset of what was written, bounded by the TTL.

Both adapters own their client handle.  Handles are created at construction,
connected once by ``connect()``, and then shared by concurrent calls without
locking.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DurableStore(Protocol):
    """Async protocol for the authoritative document store."""

    async def connect(self) -> None:
        """Establish the connection.  Raises ``BackendConnectionError``."""
        ...

    async def find_by_keys(self, keys: Collection[str]) -> dict[str, Any]:
        """Return decoded payloads for the keys that exist.  Missing keys are absent."""
        ...

    async def bulk_upsert(self, items: Mapping[str, Any], versions: Mapping[str, str] | None = None) -> None:
        """Replace (or insert) every item in a single batched write."""
        ...

    async def delete_by_keys(self, keys: Collection[str]) -> None:
        """Delete all documents for *keys*.  Missing keys are not an error."""
        ...

    async def ping(self) -> bool:
        """Liveness check.  Never raises."""
        ...

    async def close(self) -> None: ...


@runtime_checkable
class CacheStore(Protocol):
    """Async protocol for the ephemeral cache."""

    async def connect(self) -> None:
        """Establish the connection.  Raises ``BackendConnectionError``."""
        ...

    async def get_many(self, keys: Sequence[str]) -> dict[str, Any]:
        """Look up every key.  Missing or expired keys are absent from the result."""
        ...

    async def set_many(self, items: Mapping[str, Any], ttl_seconds: int) -> None:
        """Store every item with an expiry of *ttl_seconds*."""
        ...

    async def delete_many(self, keys: Collection[str]) -> None:
        """Remove entries if present."""
        ...

    async def ping(self) -> bool:
        """Liveness check.  Never raises."""
        ...

    async def close(self) -> None: ...
