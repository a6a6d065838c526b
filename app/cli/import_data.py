"""Bulk import of chapter records from a JSON file.

Usage:
    python -m app.cli.import_data all_subjects_chapter_data.json
    python -m app.cli.import_data extra.json --keep-existing

By default the collection is emptied and refilled with the file's valid
records. Invalid elements are reported and skipped. The list-response cache
is cleared afterwards so the API serves the new data immediately.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

from pydantic import ValidationError

from app.adapters.cache.base import CacheUnavailableError
from app.adapters.store.base import StoreUnavailableError
from app.core.config import settings
from app.core.errors import StorageAppError
from app.core.logging import configure_logging
from app.core.resources import AppResources
from app.schemas.chapter import ChapterCreate, describe_validation_error

logger = logging.getLogger("app.cli.import_data")


def load_records(path: Path) -> list[Any]:
    """Read the JSON array at ``path``.

    Raises:
        ValueError: If the file does not hold a JSON array.
    """
    data = json.loads(path.read_text(encoding="utf-8-sig"))
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array of chapters")
    return data


def validate_records(items: Sequence[Any]) -> tuple[list[dict[str, Any]], list[tuple[int, str]]]:
    """Split ``items`` into store-ready records and (index, reason) rejections."""
    valid: list[dict[str, Any]] = []
    rejected: list[tuple[int, str]] = []
    for index, item in enumerate(items):
        try:
            valid.append(ChapterCreate.model_validate(item).to_record())
        except ValidationError as exc:
            rejected.append((index, describe_validation_error(exc)))
    return valid, rejected


async def run_import(path: Path, *, keep_existing: bool, resources: AppResources) -> int:
    items = load_records(path)
    logger.info("import.loaded", extra={"path": str(path), "records": len(items)})

    valid, rejected = validate_records(items)
    for index, reason in rejected:
        logger.warning("import.record_rejected", extra={"index": index, "error": reason})

    if keep_existing:
        for record in valid:
            await resources.store.insert(record)
        inserted = len(valid)
    else:
        inserted = await resources.store.replace_all(valid)

    deleted = await resources.chapter_service.invalidate_list_cache()
    logger.info(
        "import.completed",
        extra={
            "inserted": inserted,
            "rejected": len(rejected),
            "replaced": not keep_existing,
            "cache_entries_cleared": deleted,
        },
    )
    return inserted


async def _main_async(args: argparse.Namespace) -> int:
    resources = AppResources.from_settings(settings)
    try:
        await run_import(args.path, keep_existing=args.keep_existing, resources=resources)
    finally:
        await resources.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Import chapter records from a JSON array file.")
    parser.add_argument("path", type=Path, help="JSON file holding an array of chapter objects.")
    parser.add_argument(
        "--keep-existing",
        action="store_true",
        help="Append to the collection instead of replacing its contents.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.log)

    try:
        return asyncio.run(_main_async(args))
    except (OSError, ValueError) as exc:
        # json.JSONDecodeError is a ValueError
        logger.error("import.failed", extra={"path": str(args.path), "error_msg": str(exc)})
        return 1
    except (StoreUnavailableError, CacheUnavailableError, StorageAppError) as exc:
        logger.error(
            "import.failed",
            extra={"path": str(args.path), "error_type": type(exc).__name__, "error_msg": str(exc)},
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
