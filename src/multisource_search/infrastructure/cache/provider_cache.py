"""
Provider Cache

Per-provider in-memory TTL cache of parsed and scored search results.
Uses cachetools.TTLCache for LRU eviction and TTL expiration.

Features:
- Time-based expiration (TTL), checked passively on access
- LRU eviction when max size reached
- Canonical keys: provider name + sorted-key JSON of the request params
- Hit/miss statistics
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from cachetools import TTLCache

from multisource_search.domain.entities import UnifiedSource

logger = logging.getLogger(__name__)

DEFAULT_TTL = 24 * 60 * 60  # 24 hours
DEFAULT_MAX_SIZE = 500


def canonical_cache_key(provider: str, params: Mapping[str, Any]) -> str:
    """
    Build a deterministic cache key from provider name and request params.

    Param order does not matter: ``{"a": 1, "b": 2}`` and ``{"b": 2, "a": 1}``
    produce the same key.
    """
    payload = json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)
    return f"{provider}:{payload}"


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    sets: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "hit_rate": round(self.hit_rate, 3),
        }


class ProviderCache:
    """
    In-memory cache of provider results.

    Each provider adapter owns one instance. Entries are never refreshed
    in place: once the TTL elapses the next lookup misses and the adapter
    fetches again. Only successful fetches are stored.

    Example:
        cache = ProviderCache(ttl=3600)
        key = canonical_cache_key("crossref", {"query": "amd", "rows": 15})
        cache.set(key, sources)
        cache.get(key)  # -> sources until the TTL elapses
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        max_size: int = DEFAULT_MAX_SIZE,
        timer: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize cache.

        Args:
            ttl: Time-to-live in seconds
            max_size: Maximum number of entries
            timer: Clock used for expiry (injectable for tests)
        """
        self._cache: TTLCache[str, list[UnifiedSource]] = TTLCache(
            maxsize=max_size, ttl=ttl, timer=timer
        )
        self._lock = threading.Lock()
        self._stats = CacheStats()

    @property
    def stats(self) -> CacheStats:
        """Get cache statistics."""
        return self._stats

    @property
    def ttl(self) -> float:
        return self._cache.ttl

    def get(self, key: str) -> list[UnifiedSource] | None:
        """
        Get cached records.

        Returns:
            Cached records or None if not found/expired
        """
        with self._lock:
            try:
                value = self._cache[key]
            except KeyError:
                self._stats.misses += 1
                return None
            self._stats.hits += 1
            return value

    def set(self, key: str, value: list[UnifiedSource]) -> None:
        with self._lock:
            self._cache[key] = value
            self._stats.sets += 1

    def invalidate(self, key: str) -> bool:
        """
        Invalidate cache entry.

        Returns:
            True if entry was removed
        """
        with self._lock:
            try:
                del self._cache[key]
                return True
            except KeyError:
                return False

    def clear(self) -> int:
        """
        Clear all cache entries.

        Returns:
            Number of entries cleared
        """
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
        if count:
            logger.debug(f"Cleared {count} cached result set(s)")
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._cache
