"""Chapter read/write pipeline.

Composes the record store and the response cache behind the chapter
endpoints:
- list: equality filters + pagination, read-through cached for a fixed TTL
- get by id and yearly stats: straight store reads, never cached
- upload: validate and persist each element independently, then drop every
  cached list response

Invalidation removes the whole list-cache family on every upload; entries are
not matched against the filters the new records fall under.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Iterator

from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError

from app.adapters.cache.base import AbstractCache, CacheUnavailableError
from app.adapters.store.base import AbstractChapterStore, Record, StoreUnavailableError
from app.core.errors import NotFoundAppError, StorageAppError
from app.schemas.chapter import TRACKED_YEARS, ChapterCreate, describe_validation_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChapterFilters:
    """Optional list filters as received from the query string.

    Empty strings count as "not provided".
    """

    class_: str | None = None
    unit: str | None = None
    status: str | None = None
    is_weak_chapter: str | None = None
    subject: str | None = None

    def to_store_filter(self) -> dict[str, Any]:
        """Build the equality filter for the record store.

        ``is_weak_chapter`` is a query-string flag: exactly ``"true"`` selects
        weak chapters, any other non-empty value selects the rest.
        """
        query: dict[str, Any] = {}
        if self.class_:
            query["class"] = self.class_
        if self.unit:
            query["unit"] = self.unit
        if self.status:
            query["status"] = self.status
        if self.is_weak_chapter:
            query["isWeakChapter"] = self.is_weak_chapter == "true"
        if self.subject:
            query["subject"] = self.subject
        return query


def compute_skip(page: int, limit: int) -> int:
    return (page - 1) * limit


def count_pages(total: int, limit: int) -> int:
    """Number of pages of size ``limit`` needed for ``total`` records (ceil)."""
    return -(-total // limit)


def build_list_cache_key(
    store_filter: dict[str, Any],
    page: int,
    limit: int,
    *,
    year: str | None = None,
    prefix: str = "chapters",
) -> str:
    """Deterministic cache key for one list request.

    Filter fields are serialized with sorted keys, so the same filters in a
    different query-string order share an entry. The requested year is part
    of the key because it changes the payload (``yearStats``).
    """
    encoded_filter = json.dumps(store_filter, sort_keys=True, separators=(",", ":"))
    key = f"{prefix}:{encoded_filter}:{page}:{limit}"
    if year:
        key = f"{key}:year={year}"
    return key


def sum_year(records: Iterable[Record], year: str) -> int:
    """Total question count for ``year`` across ``records`` (0 where absent)."""
    return sum((r.get("yearWiseQuestionCount") or {}).get(year, 0) for r in records)


def yearly_totals(records: Iterable[Record]) -> dict[str, int]:
    """Per-year question count totals across ``records``.

    Every tracked year appears in the result, with 0 when nothing matched.
    """
    totals = {year: 0 for year in TRACKED_YEARS}
    for record in records:
        for year, count in (record.get("yearWiseQuestionCount") or {}).items():
            totals[year] = totals.get(year, 0) + (count or 0)
    return totals


def _hash_key(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()[:16]


@contextmanager
def _backend_errors(operation: str) -> Iterator[None]:
    """Turn store/cache outages into StorageAppError (rendered as a plain 500)."""
    try:
        yield
    except (StoreUnavailableError, CacheUnavailableError) as exc:
        logger.error(
            "chapters.backend_error",
            extra={
                "operation": operation,
                "error_type": type(exc).__name__,
                "error_msg": str(exc),
            },
        )
        raise StorageAppError(code="backend_unavailable", message="Internal server error") from exc


class ChapterService:
    """Request pipeline for the chapter resource.

    Attributes:
        store: Record store holding chapter documents.
        cache: Cache for serialized list responses.
        cache_ttl_seconds: Lifetime of a cached list response.
        cache_prefix: Namespace shared by every list cache key.
    """

    def __init__(
        self,
        store: AbstractChapterStore,
        cache: AbstractCache,
        *,
        cache_ttl_seconds: int = 3600,
        cache_prefix: str = "chapters",
    ) -> None:
        self.store = store
        self.cache = cache
        self.cache_ttl_seconds = cache_ttl_seconds
        self.cache_prefix = cache_prefix

    async def list_chapters(
        self,
        filters: ChapterFilters,
        *,
        page: int = 1,
        limit: int = 10,
        year: str | None = None,
    ) -> dict[str, Any]:
        """Return one page of matching chapters with pagination metadata.

        When ``year`` is given the payload also carries ``yearStats``: the sum
        of that year's counts over the records on this page (not over every
        match; the yearly stats endpoint covers the full set).

        Args:
            filters: Optional equality filters.
            page: 1-based page number.
            limit: Page size.
            year: Optional year whose page-local total is reported.

        Returns:
            JSON-ready payload, identical on cache hit and miss.
        """
        store_filter = filters.to_store_filter()
        cache_key = build_list_cache_key(
            store_filter, page, limit, year=year, prefix=self.cache_prefix
        )

        with _backend_errors("cache_get"):
            cached = await self.cache.get(cache_key)
        if cached is not None:
            logger.debug("cache.hit", extra={"cache_key": _hash_key(cache_key)})
            return json.loads(cached)
        logger.debug("cache.miss", extra={"cache_key": _hash_key(cache_key)})

        with _backend_errors("store_list"):
            chapters, total = await asyncio.gather(
                self.store.find(store_filter, skip=compute_skip(page, limit), limit=limit),
                self.store.count(store_filter),
            )

        payload: dict[str, Any] = {
            "chapters": chapters,
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "pages": count_pages(total, limit),
            },
        }
        if year:
            payload["yearStats"] = sum_year(chapters, year)

        encoded = jsonable_encoder(payload)
        with _backend_errors("cache_set"):
            await self.cache.set(cache_key, json.dumps(encoded), ttl_seconds=self.cache_ttl_seconds)

        logger.info(
            "chapters.listed",
            extra={
                "filter_fields": sorted(store_filter),
                "page": page,
                "limit": limit,
                "returned": len(chapters),
                "total": total,
            },
        )
        return encoded

    async def get_chapter(self, chapter_id: str) -> dict[str, Any]:
        """Fetch one chapter by id.

        Raises:
            NotFoundAppError: If no chapter has this id (malformed ids included).
        """
        with _backend_errors("store_get"):
            record = await self.store.get_by_id(chapter_id)
        if record is None:
            raise NotFoundAppError(
                code="chapter_not_found",
                message="Chapter not found",
                details={"chapter_id": chapter_id},
            )
        return jsonable_encoder(record)

    async def yearly_stats(
        self,
        *,
        subject: str | None = None,
        class_: str | None = None,
    ) -> dict[str, int]:
        """Sum each year's question count across every matching chapter."""
        store_filter = ChapterFilters(subject=subject, class_=class_).to_store_filter()
        with _backend_errors("store_find_all"):
            records = await self.store.find_all(store_filter)
        return yearly_totals(records)

    async def upload_chapters(self, items: list[Any]) -> dict[str, Any]:
        """Validate and persist each uploaded element independently.

        A bad element is reported in ``failed`` and never stops the others.
        Afterwards the whole list-cache family is dropped, even if nothing
        was stored.

        Returns:
            ``{"message", "successful": [records], "failed": [{"data", "error"}]}``
        """
        successful: list[dict[str, Any]] = []
        failed: list[dict[str, Any]] = []

        for item in items:
            try:
                candidate = ChapterCreate.model_validate(item)
            except ValidationError as exc:
                failed.append({"data": item, "error": describe_validation_error(exc)})
                continue

            try:
                stored = await self.store.insert(candidate.to_record())
            except StoreUnavailableError as exc:
                logger.error(
                    "chapters.upload.insert_failed",
                    extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
                )
                failed.append({"data": item, "error": "Could not persist chapter"})
                continue
            successful.append(jsonable_encoder(stored))

        await self.invalidate_list_cache()

        logger.info(
            "chapters.upload.completed",
            extra={
                "received": len(items),
                "successful": len(successful),
                "failed": len(failed),
            },
        )
        return {"message": "Chapters processed", "successful": successful, "failed": failed}

    async def invalidate_list_cache(self) -> int:
        """Delete every cached list response; return how many entries went."""
        with _backend_errors("cache_invalidate"):
            deleted = await self.cache.delete_prefix(f"{self.cache_prefix}:")
        logger.info("cache.invalidated", extra={"prefix": self.cache_prefix, "deleted": deleted})
        return deleted
