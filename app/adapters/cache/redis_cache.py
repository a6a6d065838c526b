"""Redis implementation of the response cache."""

from __future__ import annotations

import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.adapters.cache.base import AbstractCache, CacheUnavailableError

logger = logging.getLogger(__name__)

# Keys deleted per DEL round-trip during prefix invalidation
_DELETE_BATCH = 500


class RedisCache(AbstractCache):
    """String values with SET EX expiry; prefix deletes via SCAN.

    SCAN walks the keyspace incrementally, so invalidation does not block the
    server the way KEYS would on a large database.
    """

    def __init__(self, client: Redis) -> None:
        self._redis = client

    async def get(self, key: str) -> str | None:
        try:
            value = await self._redis.get(key)
        except RedisError as exc:
            raise CacheUnavailableError(str(exc)) from exc
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, *, ttl_seconds: int) -> None:
        try:
            await self._redis.set(key, value, ex=ttl_seconds)
        except RedisError as exc:
            raise CacheUnavailableError(str(exc)) from exc

    async def delete_prefix(self, prefix: str) -> int:
        deleted = 0
        batch: list[str] = []
        try:
            async for key in self._redis.scan_iter(match=f"{prefix}*", count=_DELETE_BATCH):
                batch.append(key)
                if len(batch) >= _DELETE_BATCH:
                    deleted += await self._redis.delete(*batch)
                    batch.clear()
            if batch:
                deleted += await self._redis.delete(*batch)
        except RedisError as exc:
            raise CacheUnavailableError(str(exc)) from exc
        return deleted

    async def ping(self) -> None:
        try:
            await self._redis.ping()
        except RedisError as exc:
            raise CacheUnavailableError(str(exc)) from exc
