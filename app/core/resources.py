"""Backend handles shared by request handlers.

The store, cache and rate limiter are built once per application, attached to
``app.state`` before the server accepts traffic, and closed at shutdown.
Handlers reach them through FastAPI dependencies, never through module
globals.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from redis.asyncio import Redis

from app.adapters.cache import AbstractCache, CacheUnavailableError, InMemoryTTLCache, RedisCache
from app.adapters.rate_limit import (
    AbstractRateLimiter,
    InMemoryFixedWindowRateLimiter,
    RateLimiterUnavailableError,
    RedisFixedWindowRateLimiter,
)
from app.adapters.store import (
    AbstractChapterStore,
    InMemoryChapterStore,
    MongoChapterStore,
    StoreUnavailableError,
)
from app.core.config import Settings
from app.core.logging import mask_uri_credentials
from app.services.chapter_service import ChapterService

logger = logging.getLogger(__name__)


def build_store(cfg: Settings) -> AbstractChapterStore:
    if cfg.app.store_backend == "memory":
        return InMemoryChapterStore()
    return MongoChapterStore(
        cfg.mongo.uri,
        db_name=cfg.mongo.db_name,
        collection=cfg.mongo.collection,
        server_selection_timeout_ms=cfg.mongo.server_selection_timeout_ms,
    )


def build_redis_client(cfg: Settings) -> Redis:
    return Redis.from_url(
        cfg.redis.url,
        decode_responses=True,
        socket_timeout=cfg.redis.socket_timeout_seconds,
        socket_connect_timeout=cfg.redis.socket_timeout_seconds,
    )


class AppResources:
    """The set of backend handles one application instance works with.

    Only handles created here (``owned``) are closed on shutdown; injected
    ones belong to the caller.
    """

    def __init__(
        self,
        store: AbstractChapterStore,
        cache: AbstractCache,
        rate_limiter: AbstractRateLimiter,
        *,
        cache_ttl_seconds: int = 3600,
        cache_prefix: str = "chapters",
        redis_client: Redis | None = None,
        owned: tuple[object, ...] = (),
    ) -> None:
        self.store = store
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.redis_client = redis_client
        self.owned = owned
        self.chapter_service = ChapterService(
            store,
            cache,
            cache_ttl_seconds=cache_ttl_seconds,
            cache_prefix=cache_prefix,
        )

    @classmethod
    def from_settings(
        cls,
        cfg: Settings,
        *,
        store: AbstractChapterStore | None = None,
        cache: AbstractCache | None = None,
        rate_limiter: AbstractRateLimiter | None = None,
    ) -> "AppResources":
        """Build whichever handles were not injected, from configuration."""
        owned: list[object] = []
        redis_client: Redis | None = None

        needs_redis = (cache is None and cfg.app.cache_backend == "redis") or (
            rate_limiter is None and cfg.app.rate_limit_backend == "redis"
        )
        if needs_redis:
            redis_client = build_redis_client(cfg)
            owned.append(redis_client)

        if store is None:
            store = build_store(cfg)
            owned.append(store)

        if cache is None:
            cache = RedisCache(redis_client) if cfg.app.cache_backend == "redis" else InMemoryTTLCache()

        if rate_limiter is None:
            if cfg.app.rate_limit_backend == "redis":
                rate_limiter = RedisFixedWindowRateLimiter(
                    redis_client,
                    limit=cfg.app.rate_limit_requests,
                    window_seconds=cfg.app.rate_limit_window_seconds,
                )
            else:
                rate_limiter = InMemoryFixedWindowRateLimiter(
                    limit=cfg.app.rate_limit_requests,
                    window_seconds=cfg.app.rate_limit_window_seconds,
                )

        logger.info(
            "resources.built",
            extra={
                "store_backend": cfg.app.store_backend if store in owned else "injected",
                "cache_backend": cfg.app.cache_backend,
                "rate_limit_backend": cfg.app.rate_limit_backend,
                "mongodb_target": mask_uri_credentials(cfg.mongo.uri),
                "redis_target": mask_uri_credentials(cfg.redis.url) if redis_client else None,
            },
        )
        return cls(
            store,
            cache,
            rate_limiter,
            cache_ttl_seconds=cfg.app.cache_ttl_seconds,
            cache_prefix=cfg.app.cache_prefix,
            redis_client=redis_client,
            owned=tuple(owned),
        )

    def attach(self, app: FastAPI) -> None:
        app.state.resources = self
        app.state.store = self.store
        app.state.cache = self.cache
        app.state.rate_limiter = self.rate_limiter
        app.state.chapter_service = self.chapter_service

    async def check(self) -> dict[str, bool]:
        """Ping every backend and log the outcome; never raises.

        A failed check does not stop startup: the store and cache reconnect on
        their own, and the rate limiter falls back to its configured fail mode
        until Redis answers.
        """
        status: dict[str, bool] = {}
        for name, component, error_type in (
            ("store", self.store, StoreUnavailableError),
            ("cache", self.cache, CacheUnavailableError),
            ("rate_limiter", self.rate_limiter, RateLimiterUnavailableError),
        ):
            try:
                await component.ping()
                status[name] = True
            except error_type as exc:
                status[name] = False
                logger.error(
                    "resources.backend_unreachable",
                    extra={"backend": name, "error_type": type(exc).__name__, "error_msg": str(exc)},
                )
        if all(status.values()):
            logger.info("resources.backends_ready")
        return status

    async def close(self) -> None:
        for handle in self.owned:
            if isinstance(handle, Redis):
                await handle.aclose()
            elif isinstance(handle, AbstractChapterStore):
                await handle.close()
        logger.info("resources.closed")
