"""MongoDB chapter store on the pymongo asyncio client."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, AsyncMongoClient
from pymongo.errors import PyMongoError

from app.adapters.store.base import (
    AbstractChapterStore,
    Filter,
    Record,
    StoreUnavailableError,
    stamp_new_record,
)

logger = logging.getLogger(__name__)

_NEWEST_FIRST = [("createdAt", DESCENDING), ("_id", DESCENDING)]


def _to_record(doc: dict[str, Any]) -> Record:
    doc["_id"] = str(doc["_id"])
    return doc


class MongoChapterStore(AbstractChapterStore):
    """Chapter collection access.

    The client is created once and shared by all requests; pymongo pools
    connections internally and connects lazily on first use.
    """

    def __init__(
        self,
        uri: str,
        *,
        db_name: str,
        collection: str,
        server_selection_timeout_ms: int = 5000,
    ) -> None:
        self._client: AsyncMongoClient = AsyncMongoClient(
            uri,
            tz_aware=True,
            serverSelectionTimeoutMS=server_selection_timeout_ms,
        )
        self._collection = self._client[db_name][collection]

    async def find(self, filter: Filter, *, skip: int, limit: int) -> list[Record]:
        try:
            cursor = self._collection.find(filter).sort(_NEWEST_FIRST).skip(skip).limit(limit)
            return [_to_record(doc) async for doc in cursor]
        except PyMongoError as exc:
            raise StoreUnavailableError(str(exc)) from exc

    async def count(self, filter: Filter) -> int:
        try:
            return await self._collection.count_documents(filter)
        except PyMongoError as exc:
            raise StoreUnavailableError(str(exc)) from exc

    async def find_all(self, filter: Filter) -> list[Record]:
        try:
            cursor = self._collection.find(filter).sort(_NEWEST_FIRST)
            return [_to_record(doc) async for doc in cursor]
        except PyMongoError as exc:
            raise StoreUnavailableError(str(exc)) from exc

    async def get_by_id(self, chapter_id: str) -> Record | None:
        try:
            oid = ObjectId(chapter_id)
        except (InvalidId, TypeError):
            return None
        try:
            doc = await self._collection.find_one({"_id": oid})
        except PyMongoError as exc:
            raise StoreUnavailableError(str(exc)) from exc
        return _to_record(doc) if doc else None

    async def insert(self, record: Record) -> Record:
        doc = stamp_new_record(record)
        try:
            result = await self._collection.insert_one(doc)
        except PyMongoError as exc:
            raise StoreUnavailableError(str(exc)) from exc
        doc["_id"] = str(result.inserted_id)
        return doc

    async def replace_all(self, records: Iterable[Record]) -> int:
        docs = [stamp_new_record(r) for r in records]
        try:
            await self._collection.delete_many({})
            if not docs:
                return 0
            result = await self._collection.insert_many(docs, ordered=False)
        except PyMongoError as exc:
            raise StoreUnavailableError(str(exc)) from exc
        logger.info("store.replace_all", extra={"inserted": len(result.inserted_ids)})
        return len(result.inserted_ids)

    async def ensure_indexes(self) -> None:
        """Index the filterable fields and the list sort order."""
        try:
            await self._collection.create_index(_NEWEST_FIRST)
            await self._collection.create_index([("subject", 1), ("class", 1)])
        except PyMongoError as exc:
            raise StoreUnavailableError(str(exc)) from exc

    async def ping(self) -> None:
        try:
            await self._client.admin.command("ping")
        except PyMongoError as exc:
            raise StoreUnavailableError(str(exc)) from exc

    async def close(self) -> None:
        await self._client.close()
