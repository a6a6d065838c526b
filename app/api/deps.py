"""FastAPI dependencies resolving per-application handles from ``app.state``."""

from __future__ import annotations

from fastapi import Request

from app.services.chapter_service import ChapterService


def get_chapter_service(request: Request) -> ChapterService:
    return request.app.state.chapter_service
