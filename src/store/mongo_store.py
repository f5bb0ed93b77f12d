# src/store/mongo_store.py — v1
"""MongoDB document store adapter.

Uses pymongo's native asyncio client. The client is created by the caller
(or by the factory) and owned by this store; nothing is cached at module
level.
"""

from __future__ import annotations

import logging

from pymongo import ASCENDING, AsyncMongoClient
from pymongo.errors import OperationFailure, PyMongoError

from kubishi.store.base_document_store import (
    BaseDocumentStore,
    Document,
    StoreConnectionError,
    StoreError,
)
from kubishi.store.models import DropOutcome, IndexOutcome

logger = logging.getLogger(__name__)

# IndexOptionsConflict, IndexKeySpecsConflict
_INDEX_EXISTS_CODES = frozenset({85, 86})


class MongoDocumentStore(BaseDocumentStore):
    """Document store backed by MongoDB."""

    def __init__(
        self,
        uri: str,
        database: str,
        client: AsyncMongoClient | None = None,
        server_selection_timeout_ms: int = 10_000,
    ) -> None:
        self._client = client or AsyncMongoClient(
            uri,
            tz_aware=True,
            serverSelectionTimeoutMS=server_selection_timeout_ms,
            connectTimeoutMS=server_selection_timeout_ms,
        )
        self._database = database
        self._db = self._client[database]

    @property
    def database_name(self) -> str:
        return self._database

    async def connect(self) -> None:
        try:
            await self._client.admin.command("ping")
        except PyMongoError as e:
            raise StoreConnectionError(f"Cannot reach MongoDB: {e}") from e
        logger.debug("Connected to MongoDB database %s", self._database)

    async def close(self) -> None:
        await self._client.close()

    async def insert_many(self, collection: str, documents: list[Document]) -> int:
        if not documents:
            return 0
        try:
            result = await self._db[collection].insert_many(documents, ordered=True)
        except PyMongoError as e:
            raise StoreError(f"insert_many into {collection} failed: {e}") from e
        return len(result.inserted_ids)

    async def find(
        self,
        collection: str,
        filter: Document | None = None,
        projection: dict[str, int] | None = None,
    ) -> list[Document]:
        cursor = self._db[collection].find(filter or {}, projection)
        return await cursor.to_list(None)

    async def find_one(
        self,
        collection: str,
        filter: Document,
        projection: dict[str, int] | None = None,
    ) -> Document | None:
        return await self._db[collection].find_one(filter, projection)

    async def sample(
        self,
        collection: str,
        filter: Document | None = None,
        size: int = 1,
        projection: dict[str, int] | None = None,
    ) -> list[Document]:
        pipeline: list[Document] = []
        if filter:
            pipeline.append({"$match": filter})
        pipeline.append({"$sample": {"size": size}})
        if projection:
            pipeline.append({"$project": projection})
        cursor = await self._db[collection].aggregate(pipeline)
        return await cursor.to_list(None)

    async def update_one(
        self,
        collection: str,
        filter: Document,
        set_fields: Document,
        upsert: bool = False,
        set_on_insert: Document | None = None,
    ) -> None:
        update: Document = {"$set": set_fields}
        if set_on_insert:
            update["$setOnInsert"] = set_on_insert
        await self._db[collection].update_one(filter, update, upsert=upsert)

    async def delete_many(self, collection: str, filter: Document | None = None) -> int:
        result = await self._db[collection].delete_many(filter or {})
        return result.deleted_count

    async def drop(self, collection: str) -> DropOutcome:
        names = await self._db.list_collection_names()
        if collection not in names:
            return DropOutcome.ABSENT
        await self._db.drop_collection(collection)
        return DropOutcome.DROPPED

    async def count(self, collection: str) -> int:
        return await self._db[collection].count_documents({})

    async def create_index(
        self, collection: str, field: str, unique: bool = False,
    ) -> IndexOutcome:
        coll = self._db[collection]
        try:
            existing = await coll.index_information()
        except OperationFailure:
            # Namespace does not exist yet.
            existing = {}
        if f"{field}_1" in existing:
            return IndexOutcome.EXISTS
        try:
            await coll.create_index([(field, ASCENDING)], unique=unique)
        except OperationFailure as e:
            if e.code in _INDEX_EXISTS_CODES:
                return IndexOutcome.EXISTS
            raise StoreError(
                f"create_index {collection}.{field} failed: {e}"
            ) from e
        return IndexOutcome.CREATED
