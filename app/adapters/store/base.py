"""Record store interface for chapter documents.

Records cross this boundary as plain dicts keyed by their wire names
(``subject``, ``class``, ``yearWiseQuestionCount``...). Stored records carry
``_id`` as a string and ``createdAt``/``updatedAt`` as aware datetimes.
Filters are equality matches on top-level fields.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Iterable

Record = dict[str, Any]
Filter = dict[str, Any]


class StoreUnavailableError(Exception):
    """Raised when the record store cannot complete an operation."""


def stamp_new_record(record: Record, now: datetime | None = None) -> Record:
    """Return a copy of ``record`` with creation/modification timestamps set."""
    now = now or datetime.now(timezone.utc)
    return {**record, "createdAt": now, "updatedAt": now}


class AbstractChapterStore(ABC):
    @abstractmethod
    async def find(self, filter: Filter, *, skip: int, limit: int) -> list[Record]:
        """Return up to ``limit`` matches after ``skip``, newest first."""
        raise NotImplementedError

    @abstractmethod
    async def count(self, filter: Filter) -> int:
        raise NotImplementedError

    @abstractmethod
    async def find_all(self, filter: Filter) -> list[Record]:
        """Return every match, unpaginated."""
        raise NotImplementedError

    @abstractmethod
    async def get_by_id(self, chapter_id: str) -> Record | None:
        """Return the record with this id; None if absent or malformed."""
        raise NotImplementedError

    @abstractmethod
    async def insert(self, record: Record) -> Record:
        """Persist one validated record and return it with identity and timestamps."""
        raise NotImplementedError

    @abstractmethod
    async def replace_all(self, records: Iterable[Record]) -> int:
        """Drop every stored record, insert ``records``; return inserted count."""
        raise NotImplementedError

    async def ping(self) -> None:
        """Check reachability; raises StoreUnavailableError."""

    async def close(self) -> None:
        """Release connections, if any."""

    async def ensure_indexes(self) -> None:
        """Create backend indexes, if the backend has any."""
