"""
Search request/response entities.

SearchConfig is the single input of the orchestrator; SearchResult is its
single output. Both live for one request only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from multisource_search.core.exceptions import InvalidParameterError, InvalidQueryError

from .source import ProviderType, UnifiedSource


class SortBy(Enum):
    """Final ordering of the aggregated result set."""
    RELEVANCE = "relevance"
    QUALITY = "quality"
    CITATIONS = "citations"
    DATE = "date"


@dataclass
class SearchConfig:
    """
    Parameters of one multi-source search.

    Strings are accepted for ``sort_by`` and ``prioritize_sources`` and are
    coerced to enums by ``validate()``.
    """

    query: str
    max_results_per_source: int = 15
    max_total_results: int = 50
    include_abstracts: bool = True
    only_open_access: bool = False
    only_recent: bool = False
    min_quality_score: float | None = None
    prioritize_sources: list[ProviderType] = field(
        default_factory=ProviderType.canonical_order
    )
    enable_deduplication: bool = True
    sort_by: SortBy = SortBy.RELEVANCE

    def validate(self) -> SearchConfig:
        """
        Check and normalize the configuration in place.

        Raises:
            InvalidQueryError: Query is empty or blank
            InvalidParameterError: Any other field is out of range
        """
        if not isinstance(self.query, str) or not self.query.strip():
            raise InvalidQueryError(self.query)

        for name in ("max_results_per_source", "max_total_results"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise InvalidParameterError(name, value, "a positive integer")

        if self.min_quality_score is not None and not 0 <= self.min_quality_score <= 100:
            raise InvalidParameterError(
                "min_quality_score", self.min_quality_score, "a number between 0 and 100"
            )

        if not isinstance(self.sort_by, SortBy):
            try:
                self.sort_by = SortBy(self.sort_by)
            except ValueError:
                raise InvalidParameterError(
                    "sort_by", self.sort_by, f"one of {[s.value for s in SortBy]}"
                ) from None

        if not self.prioritize_sources:
            raise InvalidParameterError(
                "prioritize_sources", self.prioritize_sources, "at least one provider"
            )
        providers: list[ProviderType] = []
        for item in self.prioritize_sources:
            try:
                provider = item if isinstance(item, ProviderType) else ProviderType(item)
            except ValueError:
                raise InvalidParameterError(
                    "prioritize_sources", item, f"one of {[p.value for p in ProviderType]}"
                ) from None
            if provider not in providers:
                providers.append(provider)
        self.prioritize_sources = providers
        return self


@dataclass
class QualityMetrics:
    """Summary statistics over the final (filtered, truncated) result set."""

    average_quality: int = 0
    high_quality_count: int = 0
    open_access_count: int = 0
    with_abstract_count: int = 0
    recent_publications: int = 0
    average_citations: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "average_quality": self.average_quality,
            "high_quality_count": self.high_quality_count,
            "open_access_count": self.open_access_count,
            "with_abstract_count": self.with_abstract_count,
            "recent_publications": self.recent_publications,
            "average_citations": self.average_citations,
        }


@dataclass
class SearchResult:
    """Aggregated, deduplicated and ranked output of one search."""

    sources: list[UnifiedSource]
    total_found: int
    source_breakdown: dict[ProviderType, int]
    quality_metrics: QualityMetrics
    duplicates_removed: int = 0
    search_strategies: list[str] = field(default_factory=list)
    search_query: str = ""
    search_time_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "sources": [s.to_dict() for s in self.sources],
            "total_found": self.total_found,
            "source_breakdown": {p.value: n for p, n in self.source_breakdown.items()},
            "quality_metrics": self.quality_metrics.to_dict(),
            "duplicates_removed": self.duplicates_removed,
            "search_strategies": list(self.search_strategies),
            "search_query": self.search_query,
            "search_time_ms": self.search_time_ms,
        }
