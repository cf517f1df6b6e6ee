"""Tests for filtering, ranking and quality metrics."""

from __future__ import annotations

from datetime import date

import pytest

from multisource_search.application.search.result_aggregator import (
    RankingConfig,
    ResultAggregator,
    recent_cutoff,
    round_half_up,
)
from multisource_search.domain.entities import SearchConfig, SortBy

TODAY = date(2025, 6, 15)


@pytest.fixture
def aggregator():
    return ResultAggregator()


def config(**kwargs) -> SearchConfig:
    return SearchConfig(query="amd", **kwargs).validate()


# ============================================================
# Helpers
# ============================================================


class TestHelpers:
    def test_recent_cutoff(self):
        assert recent_cutoff(TODAY) == date(2020, 6, 15)
        assert recent_cutoff(date(2024, 2, 29)) == date(2019, 2, 28)

    @pytest.mark.parametrize(("value", "expected"), [(82.5, 83), (82.49, 82), (0.5, 1), (70.0, 70)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_composite_weights(self, make_source):
        source = make_source(relevance_score=100, quality_score=50, authority_score=0)
        assert RankingConfig().composite(source) == pytest.approx(55)


# ============================================================
# Filters
# ============================================================


class TestFilters:
    def test_min_quality(self, aggregator, make_source):
        sources = [make_source(index=i, quality_score=q) for i, q in enumerate((60, 75, 90))]
        final, _ = aggregator.aggregate(sources, config(min_quality_score=75), today=TODAY)
        assert sorted(s.quality_score for s in final) == [75, 90]

    def test_min_quality_zero_is_ignored(self, aggregator, make_source):
        sources = [make_source(quality_score=0)]
        final, _ = aggregator.aggregate(sources, config(min_quality_score=0), today=TODAY)
        assert len(final) == 1

    def test_open_access(self, aggregator, make_source):
        sources = [make_source(index=0, is_open_access=True), make_source(index=1)]
        final, _ = aggregator.aggregate(sources, config(only_open_access=True), today=TODAY)
        assert all(s.is_open_access for s in final)
        assert len(final) == 1

    def test_recent(self, aggregator, make_source):
        sources = [
            make_source(index=0, publication_date="2024-01-01"),
            make_source(index=1, publication_date="2020-06-15"),
            make_source(index=2, publication_date="2020-06-16"),
            make_source(index=3, publication_date="2010-01-01"),
            make_source(index=4, publication_date=""),
        ]
        final, _ = aggregator.aggregate(sources, config(only_recent=True), today=TODAY)
        assert sorted(s.id for s in final) == ["pubmed_0", "pubmed_2"]
        cutoff = recent_cutoff(TODAY)
        assert all(s.published_on() > cutoff for s in final)


# ============================================================
# Ranking
# ============================================================


class TestRanking:
    def test_quality_desc(self, aggregator, make_source):
        sources = [make_source(index=i, quality_score=q) for i, q in enumerate((70, 95, 80))]
        final, _ = aggregator.aggregate(sources, config(sort_by=SortBy.QUALITY), today=TODAY)
        assert [s.quality_score for s in final] == [95, 80, 70]

    def test_ties_keep_input_order(self, aggregator, make_source):
        sources = [make_source(index=i, quality_score=80) for i in range(4)]
        final, _ = aggregator.aggregate(sources, config(sort_by="quality"), today=TODAY)
        assert [s.id for s in final] == [s.id for s in sources]

    def test_citations(self, aggregator, make_source):
        sources = [make_source(index=i, citation_count=c) for i, c in enumerate((3, 300, 30))]
        final, _ = aggregator.aggregate(sources, config(sort_by="citations"), today=TODAY)
        assert [s.citation_count for s in final] == [300, 30, 3]

    def test_date_desc_with_undated_last(self, aggregator, make_source):
        sources = [
            make_source(index=0, publication_date=""),
            make_source(index=1, publication_date="2019-05-01"),
            make_source(index=2, publication_date="2023-01-01"),
            make_source(index=3, publication_date="2021"),
        ]
        final, _ = aggregator.aggregate(sources, config(sort_by="date"), today=TODAY)
        assert [s.id for s in final] == ["pubmed_2", "pubmed_3", "pubmed_1", "pubmed_0"]
        dates = [s.published_on() for s in final if s.published_on()]
        assert dates == sorted(dates, reverse=True)

    def test_relevance_composite(self, aggregator, make_source):
        strong_relevance = make_source(index=0, relevance_score=100, quality_score=50, authority_score=40)
        strong_quality = make_source(index=1, relevance_score=20, quality_score=95, authority_score=85)
        final, _ = aggregator.aggregate([strong_relevance, strong_quality], config(), today=TODAY)
        # 0.4*100 + 0.3*50 + 0.3*40 = 67 vs 0.4*20 + 0.3*95 + 0.3*85 = 62
        assert [s.id for s in final] == ["pubmed_0", "pubmed_1"]

    def test_truncates(self, aggregator, make_source):
        sources = [make_source(index=i) for i in range(12)]
        final, _ = aggregator.aggregate(sources, config(max_total_results=5), today=TODAY)
        assert len(final) == 5


# ============================================================
# Metrics
# ============================================================


class TestMetrics:
    def test_metrics_over_final_set(self, aggregator, make_source):
        sources = [
            make_source(index=0, quality_score=90, citation_count=10, is_open_access=True,
                        abstract="x", publication_date="2024-01-01"),
            make_source(index=1, quality_score=80, citation_count=5, publication_date="2015-01-01"),
            make_source(index=2, quality_score=65, citation_count=0, abstract="y",
                        publication_date="2022-03-03"),
            make_source(index=3, quality_score=10, citation_count=1000),
        ]
        final, metrics = aggregator.aggregate(
            sources, config(sort_by="quality", max_total_results=3), today=TODAY
        )
        assert len(final) == 3
        assert metrics.average_quality == 78  # 235 / 3 = 78.33
        assert metrics.high_quality_count == 2
        assert metrics.open_access_count == 1
        assert metrics.with_abstract_count == 2
        assert metrics.recent_publications == 2
        assert metrics.average_citations == 5

    def test_empty(self, aggregator):
        final, metrics = aggregator.aggregate([], config(), today=TODAY)
        assert final == []
        assert metrics.to_dict() == dict.fromkeys(metrics.to_dict(), 0)
