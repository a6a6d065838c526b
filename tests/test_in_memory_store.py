"""Unit tests for the in-process chapter store."""

import pytest
from bson import ObjectId

from app.adapters.store.in_memory import InMemoryChapterStore


@pytest.mark.asyncio
async def test_insert_assigns_identity_and_timestamps(make_chapter) -> None:
    store = InMemoryChapterStore()

    stored = await store.insert(make_chapter())

    assert ObjectId.is_valid(stored["_id"])
    assert stored["createdAt"] == stored["updatedAt"]
    assert stored["createdAt"].tzinfo is not None


@pytest.mark.asyncio
async def test_find_filters_sorts_newest_first_and_paginates(make_chapter) -> None:
    store = InMemoryChapterStore()
    for name in ("A", "B", "C", "D"):
        await store.insert(make_chapter(chapter=name))
    await store.insert(make_chapter(chapter="Organic", subject="Chemistry"))

    page_one = await store.find({"subject": "Physics"}, skip=0, limit=3)
    page_two = await store.find({"subject": "Physics"}, skip=3, limit=3)

    assert [c["chapter"] for c in page_one] == ["D", "C", "B"]
    assert [c["chapter"] for c in page_two] == ["A"]
    assert await store.count({"subject": "Physics"}) == 4
    assert await store.count({}) == 5


@pytest.mark.asyncio
async def test_get_by_id_returns_none_for_unknown_or_malformed_ids(make_chapter) -> None:
    store = InMemoryChapterStore()
    stored = await store.insert(make_chapter())

    assert (await store.get_by_id(stored["_id"]))["chapter"] == "Kinematics"
    assert await store.get_by_id(str(ObjectId())) is None
    assert await store.get_by_id("not-an-id") is None


@pytest.mark.asyncio
async def test_returned_records_are_copies(make_chapter) -> None:
    store = InMemoryChapterStore()
    stored = await store.insert(make_chapter())

    fetched = await store.get_by_id(stored["_id"])
    fetched["status"] = "Not Started"

    assert (await store.get_by_id(stored["_id"]))["status"] == "Completed"


@pytest.mark.asyncio
async def test_replace_all_drops_previous_records(make_chapter) -> None:
    store = InMemoryChapterStore([make_chapter(chapter="Old")])

    inserted = await store.replace_all([make_chapter(chapter="New 1"), make_chapter(chapter="New 2")])

    assert inserted == 2
    names = {c["chapter"] for c in await store.find_all({})}
    assert names == {"New 1", "New 2"}
