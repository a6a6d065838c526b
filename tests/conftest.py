"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any ``app`` import so the global
settings object is built for tests: in-memory backends, a known admin key,
quiet logs.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("APP_STORE_BACKEND", "memory")
os.environ.setdefault("APP_CACHE_BACKEND", "memory")
os.environ.setdefault("APP_RATE_LIMIT_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Any
from unittest.mock import Mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.adapters.cache.in_memory import InMemoryTTLCache
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.adapters.store.in_memory import InMemoryChapterStore
from app.core.app_factory import create_app

ADMIN_KEY = "test-admin-key"


def build_chapter(**overrides: Any) -> dict[str, Any]:
    """A valid chapter payload in wire format."""
    base: dict[str, Any] = {
        "subject": "Physics",
        "chapter": "Kinematics",
        "class": "Class 11",
        "unit": "Mechanics 1",
        "yearWiseQuestionCount": {
            "2019": 2,
            "2020": 4,
            "2021": 1,
            "2022": 3,
            "2023": 5,
            "2024": 0,
            "2025": 6,
        },
        "questionSolved": 10,
        "status": "Completed",
        "isWeakChapter": False,
    }
    base.update(overrides)
    return base


@pytest.fixture
def make_chapter():
    """Factory fixture for valid chapter payloads."""
    return build_chapter


@pytest.fixture
def store() -> InMemoryChapterStore:
    return InMemoryChapterStore()


@pytest.fixture
def cache() -> InMemoryTTLCache:
    return InMemoryTTLCache(max_entries=None)


@pytest.fixture
def clock() -> Mock:
    """Controllable time source for the rate limiter."""
    return Mock(return_value=1_000_020.0)


@pytest.fixture
def rate_limiter(clock: Mock) -> InMemoryFixedWindowRateLimiter:
    return InMemoryFixedWindowRateLimiter(limit=30, window_seconds=60, clock=clock)


@pytest.fixture
def app(store, cache, rate_limiter) -> FastAPI:
    return create_app(store=store, cache=cache, rate_limiter=rate_limiter)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-API-Key": ADMIN_KEY}
