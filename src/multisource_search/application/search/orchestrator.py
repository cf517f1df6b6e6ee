"""
SearchOrchestrator - Concurrent Multi-Source Search

Fans one SearchConfig out to every requested provider concurrently, joins
with all-settled semantics under an overall timeout, then hands the
combined records to the Deduplicator and the ResultAggregator.

    SearchConfig
        │
        ▼
    ┌──────────────────────────────────────────────┐
    │ gather_settled (overall timeout)             │
    │  PubMed │ EuropePMC │ S2 │ Crossref │ Web    │  ← each: cache → fetch → score
    └──────────────────────┬───────────────────────┘
                           │ concatenated in priority order
                           ▼
                      Deduplicator
                           │
                           ▼
                    ResultAggregator  → SearchResult

A failing, raising or timed-out provider contributes zero records and never
affects the others. The only errors callers see are invalid configurations.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from multisource_search.core.async_utils import gather_settled
from multisource_search.domain.entities import (
    ProviderType,
    SearchConfig,
    SearchResult,
    SortBy,
    UnifiedSource,
)
from multisource_search.infrastructure.sources.registry import ProviderRegistry

from .deduplication import Deduplicator
from .result_aggregator import ResultAggregator

logger = logging.getLogger(__name__)

DEFAULT_OVERALL_TIMEOUT = 30.0

SYSTEMATIC_REVIEW_TERMS = "systematic review OR meta-analysis"


class SearchOrchestrator:
    """
    Entry point of the aggregation engine.

    Example:
        orchestrator = container.orchestrator()
        result = await orchestrator.search_all_sources(
            SearchConfig(query="macular degeneration anti-VEGF", sort_by="quality")
        )
        for source in result.sources:
            print(source.quality_score, source.title)
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        deduplicator: Deduplicator | None = None,
        aggregator: ResultAggregator | None = None,
        overall_timeout: float | None = DEFAULT_OVERALL_TIMEOUT,
    ) -> None:
        self._registry = registry
        self._deduplicator = deduplicator or Deduplicator()
        self._aggregator = aggregator or ResultAggregator()
        self._overall_timeout = overall_timeout

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    async def search_all_sources(self, config: SearchConfig) -> SearchResult:
        """
        Search every requested provider and aggregate the results.

        Raises:
            InvalidQueryError: Empty query
            InvalidParameterError: Out-of-range configuration
        """
        config.validate()
        started = time.perf_counter()

        providers = self._registry.select(config.prioritize_sources)
        strategies = [provider.strategy for provider in providers]
        logger.info(
            f"Multi-source search '{config.query}' across "
            f"{[provider.name for provider in providers]}"
        )

        outcomes = await gather_settled(
            [
                provider.search(
                    config.query,
                    config.max_results_per_source,
                    include_abstracts=config.include_abstracts,
                    only_open_access=config.only_open_access,
                )
                for provider in providers
            ],
            timeout=self._overall_timeout,
        )

        breakdown: dict[ProviderType, int] = {provider_type: 0 for provider_type in ProviderType}
        combined: list[UnifiedSource] = []
        for provider, outcome in zip(providers, outcomes):
            if outcome.ok and outcome.value is not None:
                breakdown[provider.provider_type] = len(outcome.value)
                combined.extend(outcome.value)
                logger.info(f"{provider.name}: {len(outcome.value)} results")
            else:
                logger.warning(f"{provider.name}: search failed: {outcome.error!r}")

        total_found = len(combined)
        duplicates_removed = 0
        if config.enable_deduplication:
            combined, stats = self._deduplicator.deduplicate(
                combined, priority=config.prioritize_sources
            )
            duplicates_removed = stats.duplicates_removed

        final, metrics = self._aggregator.aggregate(combined, config)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 1)

        logger.info(
            f"Multi-source search completed: {len(final)} final sources "
            f"({total_found} found, {duplicates_removed} duplicates) in {elapsed_ms}ms"
        )
        return SearchResult(
            sources=final,
            total_found=total_found,
            source_breakdown=breakdown,
            quality_metrics=metrics,
            duplicates_removed=duplicates_removed,
            search_strategies=strategies,
            search_query=config.query,
            search_time_ms=elapsed_ms,
        )

    async def search_systematic_reviews(self, query: str) -> SearchResult:
        """Systematic reviews and meta-analyses, most cited first."""
        return await self.search_all_sources(
            SearchConfig(
                query=f"{query} {SYSTEMATIC_REVIEW_TERMS}",
                max_results_per_source=10,
                include_abstracts=True,
                sort_by=SortBy.CITATIONS,
                prioritize_sources=[
                    ProviderType.PUBMED,
                    ProviderType.EUROPE_PMC,
                    ProviderType.CROSSREF,
                ],
            )
        )

    async def search_high_quality(self, query: str) -> SearchResult:
        """Curated providers only, quality score >= 75, best first."""
        return await self.search_all_sources(
            SearchConfig(
                query=query,
                max_results_per_source=15,
                min_quality_score=75,
                include_abstracts=True,
                sort_by=SortBy.QUALITY,
                prioritize_sources=[
                    ProviderType.PUBMED,
                    ProviderType.EUROPE_PMC,
                    ProviderType.SEMANTIC_SCHOLAR,
                ],
            )
        )

    def clear_all_caches(self) -> int:
        """Drop every provider's cached results. Returns entries removed."""
        removed = self._registry.clear_caches()
        logger.info(f"Cleared {removed} cached result set(s)")
        return removed

    def cache_stats(self) -> dict[str, dict[str, Any]]:
        """Per-provider cache size and hit/miss statistics."""
        return {
            provider.name: {"size": len(provider.cache), **provider.cache.stats.to_dict()}
            for provider in self._registry
        }

    async def aclose(self) -> None:
        await self._registry.aclose()
