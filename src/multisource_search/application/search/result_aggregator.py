"""
ResultAggregator - Filtering, Ranking and Quality Metrics

Takes the deduplicated record list of one search and produces the final
ranked, truncated list plus aggregate quality metrics.

Pipeline (fixed order):
1. Filters: min quality (only when truthy) -> open access -> recent (5 years)
2. Stable descending sort by the requested strategy
3. Truncate to max_total_results
4. Metrics over the truncated set

Architecture Decision:
    ResultAggregator does NOT make API calls - purely processes existing
    results. All sorts are stable, so records with equal keys keep the
    provider-priority order established upstream.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from multisource_search.domain.entities import (
    QualityMetrics,
    SearchConfig,
    SortBy,
    UnifiedSource,
)

logger = logging.getLogger(__name__)

HIGH_QUALITY_THRESHOLD = 80
RECENT_YEARS = 5


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class RankingConfig:
    """Weights of the default (relevance) composite sort key."""

    relevance_weight: float = 0.4
    quality_weight: float = 0.3
    authority_weight: float = 0.3

    def composite(self, source: UnifiedSource) -> float:
        return (
            self.relevance_weight * source.relevance_score
            + self.quality_weight * source.quality_score
            + self.authority_weight * source.authority_score
        )


def recent_cutoff(today: date, years: int = RECENT_YEARS) -> date:
    """Same calendar day ``years`` ago (Feb 29 falls back to Feb 28)."""
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        return today.replace(year=today.year - years, day=28)


def round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def is_recent(source: UnifiedSource, cutoff: date) -> bool:
    published = source.published_on()
    return published is not None and published > cutoff


# =============================================================================
# Aggregator
# =============================================================================


class ResultAggregator:
    """
    Filter, rank, truncate and summarize a record list.

    Example:
        aggregator = ResultAggregator()
        final, metrics = aggregator.aggregate(sources, config)
    """

    def __init__(self, ranking: RankingConfig | None = None):
        self.ranking = ranking or RankingConfig()

    def aggregate(
        self,
        sources: Sequence[UnifiedSource],
        config: SearchConfig,
        today: date | None = None,
    ) -> tuple[list[UnifiedSource], QualityMetrics]:
        today = today or date.today()
        cutoff = recent_cutoff(today)

        filtered = self.apply_filters(sources, config, cutoff)
        ranked = self.rank(filtered, config.sort_by)
        final = ranked[: config.max_total_results]
        metrics = self.compute_metrics(final, cutoff)

        logger.debug(
            f"Aggregation: {len(sources)} in, {len(filtered)} after filters, {len(final)} returned"
        )
        return final, metrics

    def apply_filters(
        self,
        sources: Sequence[UnifiedSource],
        config: SearchConfig,
        cutoff: date,
    ) -> list[UnifiedSource]:
        result = list(sources)
        if config.min_quality_score:
            result = [s for s in result if s.quality_score >= config.min_quality_score]
        if config.only_open_access:
            result = [s for s in result if s.is_open_access]
        if config.only_recent:
            result = [s for s in result if is_recent(s, cutoff)]
        return result

    def rank(self, sources: Sequence[UnifiedSource], sort_by: SortBy) -> list[UnifiedSource]:
        """Stable descending sort; undated records sort last under ``date``."""
        if sort_by is SortBy.DATE:
            dated = [s for s in sources if s.published_on() is not None]
            undated = [s for s in sources if s.published_on() is None]
            dated.sort(key=lambda s: s.published_on(), reverse=True)
            return dated + undated

        key = self._sort_key(sort_by)
        return sorted(sources, key=key, reverse=True)

    def _sort_key(self, sort_by: SortBy) -> Callable[[UnifiedSource], float]:
        if sort_by is SortBy.QUALITY:
            return lambda s: s.quality_score
        if sort_by is SortBy.CITATIONS:
            return lambda s: s.citation_count
        return self.ranking.composite

    @staticmethod
    def compute_metrics(sources: Sequence[UnifiedSource], cutoff: date) -> QualityMetrics:
        if not sources:
            return QualityMetrics()
        count = len(sources)
        return QualityMetrics(
            average_quality=round_half_up(sum(s.quality_score for s in sources) / count),
            high_quality_count=sum(1 for s in sources if s.quality_score >= HIGH_QUALITY_THRESHOLD),
            open_access_count=sum(1 for s in sources if s.is_open_access),
            with_abstract_count=sum(1 for s in sources if s.has_abstract),
            recent_publications=sum(1 for s in sources if is_recent(s, cutoff)),
            average_citations=round_half_up(sum(s.citation_count for s in sources) / count),
        )
