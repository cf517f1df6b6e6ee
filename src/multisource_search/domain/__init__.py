"""
Domain Layer - Core Business Objects

Contains:
- entities: UnifiedSource, SearchConfig, SearchResult
"""

from .entities import (
    ProviderType,
    QualityMetrics,
    SearchConfig,
    SearchResult,
    SortBy,
    UnifiedSource,
)

__all__ = [
    "UnifiedSource",
    "ProviderType",
    "SearchConfig",
    "SearchResult",
    "QualityMetrics",
    "SortBy",
]
