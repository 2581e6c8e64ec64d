"""Bounded, thread-safe cache for geocoding results."""

import sys
import threading
import time
from collections.abc import Callable
from typing import Any

from cachetools import LRUCache, TTLCache

# Returned by GeocodeCache.get() when a key has never been resolved.
# Distinct from None, which is a cached negative result.
MISSING = object()


class GeocodeCache:
    """
    LRU cache mapping normalized queries to resolved points.

    Holds both positive results and negative ones (stored as None). Entries
    are evicted least-recently-used once ``capacity`` is reached and, when
    ``ttl_seconds`` is set, expire that long after being stored.

    All operations take an internal lock so the cache can be shared between
    worker threads. The lock is only held for the cache operation itself.
    """

    def __init__(
        self,
        capacity: int | None = 1024,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize an empty cache.

        Args:
            capacity: Maximum number of entries (None for unbounded)
            ttl_seconds: Lifetime of an entry (None for no expiry)
            clock: Monotonic time source for expiry, injectable for tests
        """
        if capacity is not None and capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds

        maxsize = capacity if capacity is not None else sys.maxsize
        if ttl_seconds is None:
            self._cache = LRUCache(maxsize=maxsize)
        else:
            self._cache = TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=clock)
        self._lock = threading.RLock()

    def get(self, key: str, default: Any = MISSING) -> Any:
        """
        Look up a key.

        Returns:
            The cached value (a point or None), or ``default`` when the key
            is absent or expired
        """
        with self._lock:
            return self._cache.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Store a value, evicting the least recently used entry if full."""
        with self._lock:
            self._cache[key] = value

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not MISSING

    def __len__(self) -> int:
        with self._lock:
            if isinstance(self._cache, TTLCache):
                self._cache.expire()
            return len(self._cache)
