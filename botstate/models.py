"""Shared data types for the state store."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

VERSION_FIELD = "version"


def new_version() -> str:
    """Return a fresh opaque version token."""
    return str(ObjectId())


def with_version(payload: Any, version: str) -> Any:
    """Return *payload* carrying *version*.

    Mapping payloads are shallow-copied with the token under ``version``,
    replacing whatever the caller put there.  Other JSON values are returned
    as-is; the token then only lives on the stored document.
    """
    if isinstance(payload, Mapping):
        return {**payload, VERSION_FIELD: version}
    return payload


class StoredDocument(BaseModel):
    """Layout of one record in the durable collection.

    ``key`` is stored as the document ``_id``; ``state`` is the JSON text of
    the payload (version included).
    """

    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(alias="_id")
    state: str
    date: datetime = Field(default_factory=lambda: datetime.now(UTC))
    version: str

    def to_update(self) -> dict[str, Any]:
        """``$set`` body for an upsert keyed by ``_id``."""
        return {"state": self.state, "date": self.date, "version": self.version}


class ConnectionStatus(BaseModel):
    """Which backends came up during ``connect()``."""

    durable_store_up: bool
    cache_up: bool | None = None


class HealthResult(BaseModel):
    """Composite liveness of the enabled backends.

    ``cache_up`` is ``None`` when the cache tier is disabled.
    """

    overall: bool
    durable_store_up: bool
    cache_up: bool | None = None
