"""Cache interface used by the chapter service.

Values are opaque strings (serialized JSON payloads); the service owns
serialization so a cache hit can be returned exactly as it was stored.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class CacheUnavailableError(Exception):
    """Raised when the cache backend cannot be reached."""


class AbstractCache(ABC):
    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value, or None when missing or expired."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str, *, ttl_seconds: int) -> None:
        """Store ``value`` under ``key`` for ``ttl_seconds``."""
        raise NotImplementedError

    @abstractmethod
    async def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``; return how many went."""
        raise NotImplementedError

    async def ping(self) -> None:
        """Check backend reachability; raises CacheUnavailableError."""

    async def close(self) -> None:
        """Release backend connections, if any."""
