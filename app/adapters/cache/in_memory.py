"""In-process TTL cache with LRU eviction.

Per-process only: with several workers each keeps its own copy, so an upload
handled by one worker does not clear the others. Use the Redis cache when
running more than one worker.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass

from app.adapters.cache.base import AbstractCache


@dataclass
class CacheItem:
    """Container for cached values with expiration metadata."""

    value: str
    expires_at: float


class InMemoryTTLCache(AbstractCache):
    """Thread-safe, in-memory TTL cache with LRU eviction.

    Attributes:
        max_entries: Maximum number of cached items (None for unlimited).
    """

    def __init__(self, max_entries: int | None = 1024) -> None:
        self._max_entries = max_entries
        self._store: OrderedDict[str, CacheItem] = OrderedDict()
        self._lock = threading.RLock()

    async def get(self, key: str) -> str | None:
        with self._lock:
            item = self._store.get(key)
            if item is None:
                return None

            if time.time() >= item.expires_at:
                del self._store[key]
                return None

            self._store.move_to_end(key)  # mark as recently used
            return item.value

    async def set(self, key: str, value: str, *, ttl_seconds: int) -> None:
        with self._lock:
            self._evict_expired_locked()
            self._store[key] = CacheItem(value=value, expires_at=time.time() + ttl_seconds)
            self._store.move_to_end(key)
            self._evict_if_over_capacity_locked()

    async def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._store if k.startswith(prefix)]
            for key in doomed:
                del self._store[key]
            return len(doomed)

    def _evict_expired_locked(self) -> None:
        now = time.time()
        expired_keys = [k for k, item in self._store.items() if item.expires_at <= now]
        for key in expired_keys:
            del self._store[key]

    def _evict_if_over_capacity_locked(self) -> None:
        if self._max_entries is None:
            return

        while len(self._store) > self._max_entries:
            # popitem(last=False) removes the least recently used entry
            self._store.popitem(last=False)
