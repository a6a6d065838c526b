"""Response cache adapters (Redis or in-process TTL cache)."""

from app.adapters.cache.base import AbstractCache, CacheUnavailableError
from app.adapters.cache.in_memory import InMemoryTTLCache
from app.adapters.cache.redis_cache import RedisCache

__all__ = ["AbstractCache", "CacheUnavailableError", "InMemoryTTLCache", "RedisCache"]
