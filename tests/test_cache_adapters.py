"""Unit tests for the response cache adapters."""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.adapters.cache import in_memory
from app.adapters.cache.base import CacheUnavailableError
from app.adapters.cache.in_memory import InMemoryTTLCache
from app.adapters.cache.redis_cache import RedisCache


class FakeTime:
    """Deterministic clock used to test expiration logic."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def time(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.mark.asyncio
async def test_set_and_get() -> None:
    cache = InMemoryTTLCache()

    assert await cache.get("missing") is None

    await cache.set("key", '{"v": 1}', ttl_seconds=10)
    assert await cache.get("key") == '{"v": 1}'


@pytest.mark.asyncio
async def test_expired_entry_is_evicted(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_time = FakeTime()
    monkeypatch.setattr(in_memory, "time", fake_time)

    cache = InMemoryTTLCache()
    await cache.set("key", "payload", ttl_seconds=5)

    fake_time.advance(4)
    assert await cache.get("key") == "payload"

    fake_time.advance(2)
    assert await cache.get("key") is None
    assert await cache.delete_prefix("key") == 0


@pytest.mark.asyncio
async def test_lru_eviction_removes_least_recently_used() -> None:
    cache = InMemoryTTLCache(max_entries=2)
    await cache.set("a", "1", ttl_seconds=100)
    await cache.set("b", "2", ttl_seconds=100)

    # Access "a" so that "b" becomes least recently used
    assert await cache.get("a") == "1"

    await cache.set("c", "3", ttl_seconds=100)

    assert await cache.get("a") == "1"
    assert await cache.get("c") == "3"
    assert await cache.get("b") is None


@pytest.mark.asyncio
async def test_delete_prefix_only_removes_matching_family() -> None:
    cache = InMemoryTTLCache()
    await cache.set('chapters:{}:1:10', "a", ttl_seconds=100)
    await cache.set('chapters:{"subject":"Physics"}:2:5', "b", ttl_seconds=100)
    await cache.set("other:key", "c", ttl_seconds=100)

    deleted = await cache.delete_prefix("chapters:")

    assert deleted == 2
    assert await cache.get('chapters:{}:1:10') is None
    assert await cache.get("other:key") == "c"


async def _scan(*keys: str):
    for key in keys:
        yield key


@pytest.mark.asyncio
async def test_redis_cache_sets_with_expiry_and_reads_back() -> None:
    client = AsyncMock()
    client.get.return_value = '{"chapters": []}'
    cache = RedisCache(client)

    await cache.set("chapters:{}:1:10", '{"chapters": []}', ttl_seconds=3600)
    client.set.assert_awaited_once_with("chapters:{}:1:10", '{"chapters": []}', ex=3600)

    assert await cache.get("chapters:{}:1:10") == '{"chapters": []}'


@pytest.mark.asyncio
async def test_redis_cache_delete_prefix_scans_and_deletes() -> None:
    client = AsyncMock()
    client.scan_iter = lambda match, count: _scan("chapters:a", "chapters:b")
    client.delete.return_value = 2
    cache = RedisCache(client)

    assert await cache.delete_prefix("chapters:") == 2
    client.delete.assert_awaited_once_with("chapters:a", "chapters:b")


@pytest.mark.asyncio
async def test_redis_cache_delete_prefix_with_no_keys_skips_delete() -> None:
    client = AsyncMock()
    client.scan_iter = lambda match, count: _scan()
    cache = RedisCache(client)

    assert await cache.delete_prefix("chapters:") == 0
    client.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_redis_cache_wraps_connection_errors() -> None:
    client = AsyncMock()
    client.get.side_effect = RedisConnectionError("Connection refused")
    cache = RedisCache(client)

    with pytest.raises(CacheUnavailableError):
        await cache.get("chapters:{}:1:10")
