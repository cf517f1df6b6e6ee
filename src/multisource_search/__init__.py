"""
Multi-Source Search - Bibliographic Search Aggregation Engine

Queries PubMed, Europe PMC, Semantic Scholar, Crossref and a general web
search endpoint concurrently, then merges, de-duplicates, scores and ranks
the results into one list.

Usage:
    from multisource_search import SearchConfig, create_container

    orchestrator = create_container().orchestrator()
    result = await orchestrator.search_all_sources(
        SearchConfig(query="diabetic retinopathy screening", sort_by="quality")
    )

    for source in result.sources:
        print(f"{source.quality_score:.0f} {source.title}")

Features:
    - All-settled fan-out: one failing provider never sinks the search
    - Per-provider TTL caches
    - DOI / PMID / title de-duplication with provider priority
    - Data-driven quality, relevance, authority and impact scoring
    - Filters, stable ranking and aggregate quality metrics
"""

from .application.search import (
    Deduplicator,
    QualityScorer,
    ResultAggregator,
    SearchOrchestrator,
)
from .config import QueryFocus, SearchSettings, configure_logging
from .container import ApplicationContainer, create_container
from .domain.entities import (
    ProviderType,
    QualityMetrics,
    SearchConfig,
    SearchResult,
    SortBy,
    UnifiedSource,
)

__version__ = "0.1.0"

__all__ = [
    # Entry points
    "SearchOrchestrator",
    "ApplicationContainer",
    "create_container",
    # Configuration
    "SearchConfig",
    "SearchSettings",
    "QueryFocus",
    "SortBy",
    "configure_logging",
    # Results
    "SearchResult",
    "UnifiedSource",
    "QualityMetrics",
    "ProviderType",
    # Pipeline stages
    "QualityScorer",
    "Deduplicator",
    "ResultAggregator",
]
