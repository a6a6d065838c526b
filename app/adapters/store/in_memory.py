"""In-process chapter store.

Used by the test suite and for local runs without MongoDB
(``APP_STORE_BACKEND=memory``). Identity is a BSON ObjectId rendered as a hex
string, same as the Mongo store, so ids look identical across backends.
"""

from __future__ import annotations

import asyncio
import copy
from typing import Iterable

from bson import ObjectId

from app.adapters.store.base import AbstractChapterStore, Filter, Record, stamp_new_record


def _matches(record: Record, filter: Filter) -> bool:
    return all(record.get(field) == value for field, value in filter.items())


class InMemoryChapterStore(AbstractChapterStore):
    def __init__(self, records: Iterable[Record] = ()) -> None:
        self._records: list[Record] = []
        self._lock = asyncio.Lock()
        self.find_calls = 0
        for record in records:
            self._append(stamp_new_record(record))

    def _append(self, record: Record) -> Record:
        stored = copy.deepcopy(record)
        stored["_id"] = str(ObjectId())
        self._records.append(stored)
        return copy.deepcopy(stored)

    def _newest_first(self, filter: Filter) -> list[Record]:
        matches = [r for r in self._records if _matches(r, filter)]
        # ObjectIds grow monotonically within a process; break timestamp ties with them
        matches.sort(key=lambda r: (r["createdAt"], r["_id"]), reverse=True)
        return matches

    async def find(self, filter: Filter, *, skip: int, limit: int) -> list[Record]:
        self.find_calls += 1
        page = self._newest_first(filter)[skip : skip + limit]
        return copy.deepcopy(page)

    async def count(self, filter: Filter) -> int:
        return sum(1 for r in self._records if _matches(r, filter))

    async def find_all(self, filter: Filter) -> list[Record]:
        self.find_calls += 1
        return copy.deepcopy(self._newest_first(filter))

    async def get_by_id(self, chapter_id: str) -> Record | None:
        for record in self._records:
            if record["_id"] == chapter_id:
                return copy.deepcopy(record)
        return None

    async def insert(self, record: Record) -> Record:
        async with self._lock:
            return self._append(stamp_new_record(record))

    async def replace_all(self, records: Iterable[Record]) -> int:
        async with self._lock:
            self._records.clear()
            inserted = 0
            for record in records:
                self._append(stamp_new_record(record))
                inserted += 1
            return inserted
