"""
Search Application Layer

Key Components:
- SearchOrchestrator: Concurrent fan-out and result assembly
- QualityScorer: Per-provider scoring policies
- Deduplicator: Cross-provider duplicate removal
- ResultAggregator: Filters, ranking and quality metrics
"""

from __future__ import annotations

from .deduplication import DeduplicationStats, Deduplicator, normalize_doi, normalize_title
from .orchestrator import SearchOrchestrator
from .result_aggregator import RankingConfig, ResultAggregator
from .scoring import SCORING_POLICIES, QualityScorer, ScoringPolicy, relevance_score

__all__ = [
    "SearchOrchestrator",
    "QualityScorer",
    "ScoringPolicy",
    "SCORING_POLICIES",
    "relevance_score",
    "Deduplicator",
    "DeduplicationStats",
    "normalize_doi",
    "normalize_title",
    "ResultAggregator",
    "RankingConfig",
]
