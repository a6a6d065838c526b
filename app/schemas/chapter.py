"""Pydantic schemas for chapter records and chapter endpoint responses."""

from __future__ import annotations

from typing import Any, List, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

TRACKED_YEARS: tuple[str, ...] = ("2019", "2020", "2021", "2022", "2023", "2024", "2025")

ChapterStatus = Literal["Not Started", "In Progress", "Completed"]


class YearWiseQuestionCount(BaseModel):
    """Question counts per exam year; years outside TRACKED_YEARS are rejected."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    y2019: int = Field(0, ge=0, alias="2019")
    y2020: int = Field(0, ge=0, alias="2020")
    y2021: int = Field(0, ge=0, alias="2021")
    y2022: int = Field(0, ge=0, alias="2022")
    y2023: int = Field(0, ge=0, alias="2023")
    y2024: int = Field(0, ge=0, alias="2024")
    y2025: int = Field(0, ge=0, alias="2025")


class ChapterCreate(BaseModel):
    """A chapter as submitted by the upload endpoint or the import command.

    Unknown top-level keys are dropped; store-managed fields (``_id``,
    timestamps) are never taken from input. Numbers given for the text fields
    are stored as strings (``"class": 11`` becomes ``"11"``).
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)

    subject: str = Field(..., min_length=1)
    chapter: str = Field(..., min_length=1)
    class_: str = Field(..., min_length=1, alias="class")
    unit: str = Field(..., min_length=1)
    year_wise_question_count: YearWiseQuestionCount = Field(..., alias="yearWiseQuestionCount")
    question_solved: int = Field(0, ge=0, alias="questionSolved")
    status: ChapterStatus
    is_weak_chapter: bool = Field(False, alias="isWeakChapter")

    def to_record(self) -> dict[str, Any]:
        """Dump with wire field names, ready for the record store."""
        return self.model_dump(by_alias=True)


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class ChapterListResponse(BaseModel):
    """Documented shape of ``GET /chapters``.

    ``yearStats`` is the sum of the requested year's counts over the returned
    page only; it is absent when no year was requested.
    """

    chapters: List[dict[str, Any]]
    pagination: Pagination
    yearStats: int | None = Field(
        default=None,
        description="Page-local total of question counts for the requested year.",
    )


class UploadFailure(BaseModel):
    data: Any = Field(..., description="The rejected element exactly as uploaded.")
    error: str = Field(..., description="Why the element was rejected.")


class UploadResponse(BaseModel):
    message: str = "Chapters processed"
    successful: List[dict[str, Any]] = Field(default_factory=list)
    failed: List[UploadFailure] = Field(default_factory=list)


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic ValidationError into one readable line.

    Example:
        ``"status: Field required; yearWiseQuestionCount.2031: Extra inputs are not permitted"``
    """

    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err["loc"]) or "record"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)
