"""In-memory caches for lookup results, ratings and merged details."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

import structlog

log = structlog.get_logger()

T = TypeVar("T")

MISSING: Any = object()


class CacheMap(Generic[T]):
    """Unbounded key/value map that can cache None as a real value."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._entries: dict[str, T | None] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str, default: Any = MISSING) -> Any:
        """Return the cached value, or ``default`` (MISSING) on a miss."""
        if key not in self._entries:
            return default
        log.debug("cache_hit", cache=self.name, key=key)
        return self._entries[key]

    def put(self, key: str, value: T | None) -> None:
        self._entries[key] = value
        log.debug("cache_store", cache=self.name, key=key, empty=value is None)


class ResultCache:
    """Per-process lookup caches, keyed by derived book key.

    Ratings are keyed by rating-site id instead. Nothing is evicted or
    expired; catalogs hold tens to low hundreds of books.
    """

    def __init__(self) -> None:
        self.metadata: CacheMap = CacheMap("metadata")
        self.ratings: CacheMap = CacheMap("ratings")
        self.details: CacheMap = CacheMap("details")
