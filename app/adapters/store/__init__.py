"""Chapter record store adapters (MongoDB or in-process)."""

from app.adapters.store.base import AbstractChapterStore, StoreUnavailableError
from app.adapters.store.in_memory import InMemoryChapterStore
from app.adapters.store.mongo import MongoChapterStore

__all__ = [
    "AbstractChapterStore",
    "InMemoryChapterStore",
    "MongoChapterStore",
    "StoreUnavailableError",
]
