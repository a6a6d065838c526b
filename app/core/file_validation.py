"""Upload handling for the chapter bulk-upload endpoint."""
from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import UploadFile

from app.core.config import settings
from app.core.errors import PayloadTooLargeAppError, ValidationAppError

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


def _too_large(max_bytes: int) -> PayloadTooLargeAppError:
    return PayloadTooLargeAppError(
        code="file_too_large",
        message=f"File too large. Maximum size: {settings.app.max_upload_size_mb}MB",
        details={"max_bytes": max_bytes},
    )


async def read_upload_file_limited(file: UploadFile) -> bytes:
    """Read an uploaded file in chunks enforcing the max size limit.

    Uses file.size if available (multipart headers), falls back to chunked
    reading with enforcement.

    Raises:
        PayloadTooLargeAppError: If the file exceeds the configured size limit.
    """
    max_bytes = settings.app.max_upload_size_mb * 1024 * 1024

    file_size = getattr(file, "size", None)
    if file_size is not None and file_size > max_bytes:
        logger.warning(
            "file_validation.rejected_by_header",
            extra={"file_size": file_size, "max_bytes": max_bytes},
        )
        raise _too_large(max_bytes)

    size = 0
    chunks: list[bytes] = []
    while True:
        chunk = await file.read(8192)
        if not chunk:
            break

        size += len(chunk)
        if size > max_bytes:
            logger.warning(
                "file_validation.rejected_by_chunked_read",
                extra={"size": size, "max_bytes": max_bytes},
            )
            raise _too_large(max_bytes)
        chunks.append(chunk)

    return b"".join(chunks)


def ensure_json_upload(file: UploadFile | None) -> UploadFile:
    """Reject a missing file part or one not declared as JSON.

    Raises:
        ValidationAppError: ``no_file_uploaded`` or ``unsupported_file_type``.
    """
    if file is None:
        raise ValidationAppError(code="no_file_uploaded", message="No file uploaded")

    # Ignore parameters such as "; charset=utf-8"
    content_type = (file.content_type or "").split(";")[0].strip().lower()
    if content_type != JSON_CONTENT_TYPE:
        logger.warning("file_validation.wrong_type", extra={"content_type": content_type})
        raise ValidationAppError(
            code="unsupported_file_type",
            message="Only JSON files are allowed!",
            details={"content_type": content_type or "missing"},
        )
    return file


def parse_chapter_array(raw: bytes) -> list[Any]:
    """Decode an upload body that must hold a JSON array.

    Raises:
        ValidationAppError: If the body is not UTF-8 JSON or not an array.
    """
    try:
        data = json.loads(raw.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValidationAppError(
            code="invalid_json",
            message="Uploaded file is not valid JSON",
            details={"hint": str(exc)},
        ) from exc

    if not isinstance(data, list):
        raise ValidationAppError(
            code="expected_json_array",
            message="Uploaded file must contain a JSON array of chapters",
        )
    return data
