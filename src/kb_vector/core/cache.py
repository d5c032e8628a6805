"""Bounded, expiring cache for computed embeddings.

The cache is an ordinary object owned by whoever builds the orchestrator and
passed in explicitly; nothing here is process-global.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass
class _Entry:
    value: list[float]
    expires_at: float


class EmbeddingCache:
    """In-memory LRU cache with per-entry TTL.

    Example:
        cache = EmbeddingCache(max_size=500, ttl_seconds=600)
        cache.set(key, embedding)
        cached = cache.get(key)  # None once expired or evicted
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._data: OrderedDict[str, _Entry] = OrderedDict()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> list[float] | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                self._misses += 1
                return None
            if self._clock() >= entry.expires_at:
                del self._data[key]
                self._misses += 1
                return None
            self._data.move_to_end(key)
            self._hits += 1
            return list(entry.value)

    def set(self, key: str, value: list[float], ttl_seconds: float | None = None) -> None:
        expires_at = self._clock() + (ttl_seconds or self._ttl)
        with self._lock:
            self._data[key] = _Entry(value=list(value), expires_at=expires_at)
            self._data.move_to_end(key)
            while len(self._data) > self._max_size:
                self._data.popitem(last=False)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self._hits = 0
            self._misses = 0

    def size(self) -> int:
        with self._lock:
            return len(self._data)

    def purge_expired(self) -> int:
        """Drop expired entries; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._data.items() if now >= e.expires_at]
            for key in expired:
                del self._data[key]
            return len(expired)

    def stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._data),
                "max_size": self._max_size,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / total if total else 0.0,
            }

    def close(self) -> None:
        pass
