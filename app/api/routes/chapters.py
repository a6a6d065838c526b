from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Query, UploadFile

from app.api.deps import get_chapter_service
from app.core.auth import require_admin
from app.core.file_validation import ensure_json_upload, parse_chapter_array, read_upload_file_limited
from app.core.rate_limit import enforce_rate_limit
from app.schemas.chapter import ChapterListResponse, UploadResponse
from app.services.chapter_service import ChapterFilters, ChapterService

# Every chapter route spends one point of the caller's rate limit budget
router = APIRouter(
    prefix="/chapters",
    tags=["Chapters"],
    dependencies=[Depends(enforce_rate_limit)],
)

Service = Annotated[ChapterService, Depends(get_chapter_service)]

# Keeps skip and limit well inside the store's 64-bit integer range
MAX_PAGE = 1_000_000
MAX_LIMIT = 100


@router.get(
    "",
    response_model=None,
    responses={200: {"model": ChapterListResponse}},
)
async def list_chapters(
    service: Service,
    class_: Annotated[str | None, Query(alias="class")] = None,
    unit: str | None = None,
    status: str | None = None,
    is_weak_chapter: Annotated[str | None, Query(alias="isWeakChapter")] = None,
    subject: str | None = None,
    year: str | None = None,
    page: Annotated[int, Query(ge=1, le=MAX_PAGE)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_LIMIT)] = 10,
) -> dict[str, Any]:
    """List chapters, newest first, with optional equality filters.

    Responses are cached per filter/page/limit/year combination for an hour;
    any upload clears them. ``year`` adds ``yearStats``, the total question
    count for that year over the returned page.
    """
    filters = ChapterFilters(
        class_=class_,
        unit=unit,
        status=status,
        is_weak_chapter=is_weak_chapter,
        subject=subject,
    )
    return await service.list_chapters(filters, page=page, limit=limit, year=year)


@router.get("/stats/yearly", response_model=None)
async def yearly_stats(
    service: Service,
    subject: str | None = None,
    class_: Annotated[str | None, Query(alias="class")] = None,
) -> dict[str, int]:
    """Total question count per year across every matching chapter."""
    return await service.yearly_stats(subject=subject, class_=class_)


@router.get("/{chapter_id}", response_model=None)
async def get_chapter(chapter_id: str, service: Service) -> dict[str, Any]:
    """Fetch a single chapter; 404 when the id matches nothing."""
    return await service.get_chapter(chapter_id)


@router.post(
    "",
    response_model=None,
    responses={200: {"model": UploadResponse}},
    dependencies=[Depends(require_admin)],
)
async def upload_chapters(
    service: Service,
    file: Annotated[UploadFile | None, File(description="JSON array of chapter objects")] = None,
) -> dict[str, Any]:
    """Bulk-create chapters from an uploaded JSON array (admin only).

    Each element is validated and stored on its own; invalid elements come
    back in ``failed`` with the reason and do not block the rest.
    """
    upload = ensure_json_upload(file)
    raw = await read_upload_file_limited(upload)
    items = parse_chapter_array(raw)
    return await service.upload_chapters(items)
