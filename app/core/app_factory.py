"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers and the
backend lifecycle) so tests can build an app around in-memory adapters.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.adapters.cache.base import AbstractCache
from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.store.base import AbstractChapterStore, StoreUnavailableError
from app.api.routes import chapters_router, health_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.resources import AppResources

API_PREFIX = "/api/v1"

logger = logging.getLogger(__name__)


def create_app(
    *,
    store: AbstractChapterStore | None = None,
    cache: AbstractCache | None = None,
    rate_limiter: AbstractRateLimiter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Handles passed in are used as-is and left open at shutdown. When all three
    are given they are attached immediately, so the app serves requests even
    without running its lifespan (plain ``TestClient(app)``). Missing handles
    are built from settings during startup, before the first request.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        resources: AppResources | None = getattr(app.state, "resources", None)
        if resources is None:
            resources = AppResources.from_settings(
                settings, store=store, cache=cache, rate_limiter=rate_limiter
            )
            resources.attach(app)
        backends = await resources.check()
        if backends.get("store"):
            try:
                await resources.store.ensure_indexes()
            except StoreUnavailableError as exc:
                logger.error("store.ensure_indexes_failed", extra={"error_msg": str(exc)})
        try:
            yield
        finally:
            await resources.close()

    app = FastAPI(
        title="Chapter Performance Dashboard API",
        description=(
            "Paginated, filterable access to chapter records with per-year question "
            "counts. List responses are cached; uploads require the admin X-API-Key "
            "and clear the cache. All chapter routes are rate limited per client address."
        ),
        version="1.0.0",
        debug=settings.app.debug,
        lifespan=lifespan,
    )

    if store is not None and cache is not None and rate_limiter is not None:
        AppResources(
            store,
            cache,
            rate_limiter,
            cache_ttl_seconds=settings.app.cache_ttl_seconds,
            cache_prefix=settings.app.cache_prefix,
        ).attach(app)

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.app.cors_origins.split(",") if o.strip()],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(chapters_router, prefix=API_PREFIX)
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
