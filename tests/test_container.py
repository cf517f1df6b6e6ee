"""Tests for the dependency-injector wiring."""

from __future__ import annotations

import pytest
from dependency_injector import providers

from multisource_search.application.search import QualityScorer, SearchOrchestrator
from multisource_search.config import QueryFocus, SearchSettings
from multisource_search.container import ApplicationContainer, create_container
from multisource_search.domain.entities import ProviderType, SearchConfig
from multisource_search.infrastructure.sources import (
    CrossrefProvider,
    EuropePMCProvider,
    PubMedProvider,
    SemanticScholarProvider,
    WebSearchProvider,
)


@pytest.fixture
def settings():
    return SearchSettings(
        ncbi_email="lab@example.org",
        crossref_email="lab@example.org",
        cache_ttl=120,
        cache_max_size=10,
        title_key_length=80,
        provider_timeout=4.0,
        overall_timeout=5.0,
        query_focus=QueryFocus.none(),
    )


@pytest.fixture
def container(settings):
    return create_container(settings)


# ============================================================
# Wiring
# ============================================================


class TestWiring:
    def test_orchestrator_singleton(self, container):
        orchestrator = container.orchestrator()
        assert isinstance(orchestrator, SearchOrchestrator)
        assert container.orchestrator() is orchestrator

    def test_registry_in_canonical_order(self, container):
        registry = container.registry()
        assert registry.provider_types == [
            ProviderType.PUBMED,
            ProviderType.EUROPE_PMC,
            ProviderType.SEMANTIC_SCHOLAR,
            ProviderType.CROSSREF,
            ProviderType.WEB_SEARCH,
        ]
        assert container.orchestrator().registry is registry

    def test_provider_classes(self, container):
        assert isinstance(container.pubmed_provider(), PubMedProvider)
        assert isinstance(container.europe_pmc_provider(), EuropePMCProvider)
        assert isinstance(container.semantic_scholar_provider(), SemanticScholarProvider)
        assert isinstance(container.crossref_provider(), CrossrefProvider)
        assert isinstance(container.web_search_provider(), WebSearchProvider)

    def test_each_provider_owns_its_cache(self, container):
        caches = [provider.cache for provider in container.registry()]
        assert len({id(cache) for cache in caches}) == len(caches)

    def test_scorer_shared(self, container):
        scorer = container.scorer()
        assert isinstance(scorer, QualityScorer)
        assert container.pubmed_provider()._scorer is scorer
        assert container.crossref_provider()._scorer is scorer


# ============================================================
# Settings Propagation
# ============================================================


class TestSettings:
    def test_cache_ttl(self, container):
        assert container.crossref_provider().cache.ttl == 120

    def test_title_key_length(self, container):
        assert container.deduplicator().title_key_length == 80

    def test_query_focus(self, container):
        provider = container.europe_pmc_provider()
        assert provider._focus == QueryFocus.none()

    def test_provider_timeout_reaches_http_clients(self, container):
        assert container.europe_pmc_client()._timeout == 4.0
        assert container.crossref_client()._timeout == 4.0
        assert container.semantic_scholar_client()._timeout == 4.0
        assert container.web_search_client()._timeout == 4.0
        assert container.crossref_provider()._timeout == 4.0

    def test_defaults_when_unset(self):
        container = ApplicationContainer()
        container.config.from_dict({"ncbi_email": "lab@example.org"})
        assert container.deduplicator().title_key_length == 50
        assert container.pubmed_provider()._timeout == 10.0
        assert container.crossref_client()._timeout == 10.0

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("MSS_TITLE_KEY_LENGTH", "64")
        monkeypatch.setenv("NCBI_EMAIL", "lab@example.org")
        container = create_container()
        assert container.deduplicator().title_key_length == 64


# ============================================================
# Overrides
# ============================================================


class TestOverrides:
    @pytest.mark.asyncio
    async def test_override_providers(self, container, make_provider, make_source):
        fakes = {
            "pubmed_provider": make_provider(ProviderType.PUBMED, [make_source(ProviderType.PUBMED)]),
            "europe_pmc_provider": make_provider(ProviderType.EUROPE_PMC),
            "semantic_scholar_provider": make_provider(ProviderType.SEMANTIC_SCHOLAR),
            "crossref_provider": make_provider(
                ProviderType.CROSSREF, [make_source(ProviderType.CROSSREF, 1)]
            ),
            "web_search_provider": make_provider(ProviderType.WEB_SEARCH),
        }
        for name, fake in fakes.items():
            getattr(container, name).override(providers.Object(fake))

        result = await container.orchestrator().search_all_sources(SearchConfig(query="amd"))

        assert result.source_breakdown[ProviderType.PUBMED] == 1
        assert result.source_breakdown[ProviderType.CROSSREF] == 1
        assert len(result.sources) == 2
        assert all(fake.calls == 1 for fake in fakes.values())
