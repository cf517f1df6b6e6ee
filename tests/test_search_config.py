"""Tests for SearchConfig validation and the result entities."""

from __future__ import annotations

import pytest

from multisource_search.core.exceptions import InvalidParameterError, InvalidQueryError
from multisource_search.domain.entities import (
    ProviderType,
    QualityMetrics,
    SearchConfig,
    SearchResult,
    SortBy,
)

# ============================================================
# SearchConfig
# ============================================================


class TestSearchConfigDefaults:
    def test_defaults(self):
        config = SearchConfig(query="glaucoma")
        assert config.max_results_per_source == 15
        assert config.max_total_results == 50
        assert config.include_abstracts is True
        assert config.only_open_access is False
        assert config.only_recent is False
        assert config.min_quality_score is None
        assert config.enable_deduplication is True
        assert config.sort_by is SortBy.RELEVANCE
        assert config.prioritize_sources == ProviderType.canonical_order()

    def test_default_sources_not_shared(self):
        first = SearchConfig(query="a")
        first.prioritize_sources.pop()
        assert len(SearchConfig(query="b").prioritize_sources) == 5


class TestSearchConfigValidate:
    @pytest.mark.parametrize("query", ["", "   ", None])
    def test_empty_query(self, query):
        with pytest.raises(InvalidQueryError):
            SearchConfig(query=query).validate()

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("max_results_per_source", 0),
            ("max_results_per_source", -5),
            ("max_total_results", 0),
            ("max_total_results", True),
            ("max_total_results", 2.5),
        ],
    )
    def test_non_positive_limits(self, field, value):
        config = SearchConfig(query="amd", **{field: value})
        with pytest.raises(InvalidParameterError) as exc_info:
            config.validate()
        assert exc_info.value.param_name == field

    @pytest.mark.parametrize("score", [-1, 100.5])
    def test_min_quality_out_of_range(self, score):
        with pytest.raises(InvalidParameterError):
            SearchConfig(query="amd", min_quality_score=score).validate()

    def test_min_quality_zero_allowed(self):
        assert SearchConfig(query="amd", min_quality_score=0).validate().min_quality_score == 0

    def test_sort_by_string_coerced(self):
        config = SearchConfig(query="amd", sort_by="citations").validate()
        assert config.sort_by is SortBy.CITATIONS

    def test_unknown_sort_by(self):
        with pytest.raises(InvalidParameterError):
            SearchConfig(query="amd", sort_by="popularity").validate()

    def test_empty_prioritize_sources(self):
        with pytest.raises(InvalidParameterError):
            SearchConfig(query="amd", prioritize_sources=[]).validate()

    def test_sources_coerced_and_deduplicated(self):
        config = SearchConfig(
            query="amd",
            prioritize_sources=["crossref", ProviderType.PUBMED, ProviderType.CROSSREF],
        ).validate()
        assert config.prioritize_sources == [ProviderType.CROSSREF, ProviderType.PUBMED]

    def test_unknown_source(self):
        with pytest.raises(InvalidParameterError):
            SearchConfig(query="amd", prioritize_sources=["scopus"]).validate()


# ============================================================
# Result Entities
# ============================================================


class TestSearchResult:
    def test_to_dict(self, make_source):
        result = SearchResult(
            sources=[make_source()],
            total_found=3,
            source_breakdown={ProviderType.PUBMED: 3, ProviderType.CROSSREF: 0},
            quality_metrics=QualityMetrics(average_quality=85),
            duplicates_removed=2,
            search_strategies=["PubMed MEDLINE database search"],
            search_query="amd",
            search_time_ms=12.5,
        )
        data = result.to_dict()
        assert data["source_breakdown"] == {"pubmed": 3, "crossref": 0}
        assert data["quality_metrics"]["average_quality"] == 85
        assert data["duplicates_removed"] == 2
        assert len(data["sources"]) == 1

    def test_empty_metrics(self):
        assert QualityMetrics().to_dict() == {
            "average_quality": 0,
            "high_quality_count": 0,
            "open_access_count": 0,
            "with_abstract_count": 0,
            "recent_publications": 0,
            "average_citations": 0,
        }
