"""
Domain Entities

Core business objects for multi-source literature search.
"""

from __future__ import annotations

from .search import QualityMetrics, SearchConfig, SearchResult, SortBy
from .source import (
    ProviderType,
    UnifiedSource,
    format_publication_date,
    parse_publication_date,
)

__all__ = [
    # Record entities
    "UnifiedSource",
    "ProviderType",
    "format_publication_date",
    "parse_publication_date",
    # Search entities
    "SearchConfig",
    "SearchResult",
    "QualityMetrics",
    "SortBy",
]
