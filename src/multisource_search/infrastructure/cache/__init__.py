"""
Cache Infrastructure

Per-provider TTL caches of parsed search results.
"""

from .provider_cache import (
    DEFAULT_MAX_SIZE,
    DEFAULT_TTL,
    CacheStats,
    ProviderCache,
    canonical_cache_key,
)

__all__ = [
    "ProviderCache",
    "CacheStats",
    "canonical_cache_key",
    "DEFAULT_TTL",
    "DEFAULT_MAX_SIZE",
]
