"""MongoDB durable store.

One document per key in ``{database}.{collection}``::

    {"_id": key, "state": "<json payload>", "date": <utc datetime>, "version": "<token>"}

Bulk writes and deletes use the write concern chosen at construction:
``w=0`` (fast, unacknowledged) by default, ``w="majority"`` with
``safe_writes=True``.
"""

from __future__ import annotations

import json
from collections.abc import Collection, Mapping
from typing import Any

from loguru import logger
from pymongo import AsyncMongoClient, UpdateOne, WriteConcern
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from botstate.errors import BackendConnectionError, ConfigurationError
from botstate.models import StoredDocument, new_version, with_version
from botstate.settings import DEFAULT_COLLECTION_NAME, DEFAULT_DATABASE_NAME

KEY_FIELD = "_id"

FAST_WRITE_CONCERN = WriteConcern(w=0)
SAFE_WRITE_CONCERN = WriteConcern(w="majority")


def _resolve_name(value: str | None, default: str) -> str:
    if value and value.strip():
        return value.strip()
    return default


class MongoDurableStore:
    """MongoDB implementation of the DurableStore protocol."""

    def __init__(
        self,
        uri: str,
        database: str | None = None,
        collection: str | None = None,
        safe_writes: bool = False,
        options: Mapping[str, Any] | None = None,
    ) -> None:
        if not uri or not uri.strip():
            msg = "MongoDB connection URI is required"
            raise ConfigurationError(msg)

        self.database_name = _resolve_name(database, DEFAULT_DATABASE_NAME)
        self.collection_name = _resolve_name(collection, DEFAULT_COLLECTION_NAME)
        self.write_concern = SAFE_WRITE_CONCERN if safe_writes else FAST_WRITE_CONCERN

        self._client: AsyncMongoClient = AsyncMongoClient(uri, **dict(options or {}))
        self._collection: AsyncCollection = self._client.get_database(self.database_name).get_collection(
            self.collection_name, write_concern=self.write_concern
        )

    @property
    def client(self) -> AsyncMongoClient:
        return self._client

    @property
    def collection(self) -> AsyncCollection:
        return self._collection

    # -- Lifecycle -------------------------------------------------------------

    async def connect(self) -> None:
        # AsyncMongoClient connects lazily; a ping forces server selection.
        try:
            await self._client.admin.command("ping")
        except PyMongoError as e:
            raise BackendConnectionError("mongodb", str(e)) from e
        logger.info("MongoDB: connected ({}.{})", self.database_name, self.collection_name)

    async def close(self) -> None:
        await self._client.close()
        logger.info("MongoDB: closed")

    # -- Read ------------------------------------------------------------------

    async def find_by_keys(self, keys: Collection[str]) -> dict[str, Any]:
        if not keys:
            return {}
        found: dict[str, Any] = {}
        async for doc in self._collection.find({KEY_FIELD: {"$in": list(keys)}}):
            found[doc[KEY_FIELD]] = json.loads(doc["state"])
        logger.debug("MongoDB: found {}/{} keys", len(found), len(keys))
        return found

    # -- Write -----------------------------------------------------------------

    async def bulk_upsert(self, items: Mapping[str, Any], versions: Mapping[str, str] | None = None) -> None:
        """Upsert all *items* in one ``bulk_write``.

        Each payload is serialized with a version token: the one given in
        *versions* when the caller already picked it, a fresh one otherwise.
        *items* itself is not modified.
        """
        if not items:
            return
        operations = []
        for key, payload in items.items():
            version = (versions or {}).get(key) or new_version()
            state = json.dumps(with_version(payload, version))
            doc = StoredDocument(key=key, state=state, version=version)
            operations.append(UpdateOne({KEY_FIELD: key}, {"$set": doc.to_update()}, upsert=True))
        await self._collection.bulk_write(operations)
        logger.debug("MongoDB: upserted {} keys (w={})", len(operations), self.write_concern.document.get("w"))

    async def delete_by_keys(self, keys: Collection[str]) -> None:
        if not keys:
            return
        await self._collection.delete_many({KEY_FIELD: {"$in": list(keys)}})
        logger.debug("MongoDB: deleted {} keys", len(keys))

    # -- Health ----------------------------------------------------------------

    async def ping(self) -> bool:
        try:
            response = await self._client.admin.command("ping")
        except PyMongoError as e:
            logger.warning("MongoDB: ping failed: {}", e)
            return False
        return bool(response.get("ok"))
