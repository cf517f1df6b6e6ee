"""
Application DI Container (dependency-injector).

Wires clients, provider adapters, caches and the search pipeline together.
Each provider owns its own ProviderCache, so clearing or sizing one never
touches the others.

Usage::

    from multisource_search.config import SearchSettings
    from multisource_search.container import create_container

    container = create_container(SearchSettings.from_env())
    orchestrator = container.orchestrator()

    # In tests, override any provider:
    container.pubmed_provider.override(providers.Object(fake_provider))
"""

from __future__ import annotations

import logging
from typing import Any

from dependency_injector import containers, providers

from multisource_search.application.search import (
    Deduplicator,
    QualityScorer,
    ResultAggregator,
    SearchOrchestrator,
)
from multisource_search.config import DEFAULT_EMAIL, DEFAULT_WEB_SEARCH_URL, SearchSettings
from multisource_search.infrastructure.cache import DEFAULT_MAX_SIZE, DEFAULT_TTL, ProviderCache
from multisource_search.infrastructure.sources import (
    BaseAPIClient,
    CrossRefClient,
    CrossrefProvider,
    EntrezClient,
    EuropePMCClient,
    EuropePMCProvider,
    ProviderRegistry,
    PubMedProvider,
    SearchProvider,
    SemanticScholarClient,
    SemanticScholarProvider,
    WebSearchClient,
    WebSearchProvider,
)

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_TIMEOUT = 10.0
DEFAULT_OVERALL_TIMEOUT = 30.0


def _create_cache(ttl: float | None, max_size: int | None) -> ProviderCache:
    return ProviderCache(ttl=ttl or DEFAULT_TTL, max_size=max_size or DEFAULT_MAX_SIZE)


def _create_entrez_client(email: str | None, api_key: str | None) -> EntrezClient:
    return EntrezClient(email=email or DEFAULT_EMAIL, api_key=api_key or None)


def _create_web_client(
    api_key: str | None, engine_id: str | None, url: str | None, timeout: float | None
) -> WebSearchClient:
    return WebSearchClient(
        api_key=api_key or None,
        engine_id=engine_id or None,
        url=url or DEFAULT_WEB_SEARCH_URL,
        timeout=timeout or DEFAULT_PROVIDER_TIMEOUT,
    )


def _create_http_client(
    client_cls: type[BaseAPIClient], timeout: float | None, **kwargs: Any
) -> BaseAPIClient:
    return client_cls(timeout=timeout or DEFAULT_PROVIDER_TIMEOUT, **kwargs)


def _create_provider(
    provider_cls: type[SearchProvider], client: Any, timeout: float | None, **kwargs: Any
) -> SearchProvider:
    return provider_cls(client, timeout=timeout or DEFAULT_PROVIDER_TIMEOUT, **kwargs)


def _create_registry(*providers_in_order: SearchProvider) -> ProviderRegistry:
    return ProviderRegistry(providers_in_order)


def _create_orchestrator(
    registry: ProviderRegistry,
    deduplicator: Deduplicator,
    aggregator: ResultAggregator,
    overall_timeout: float | None,
) -> SearchOrchestrator:
    return SearchOrchestrator(
        registry,
        deduplicator=deduplicator,
        aggregator=aggregator,
        overall_timeout=overall_timeout or DEFAULT_OVERALL_TIMEOUT,
    )


def _create_deduplicator(title_key_length: int | None) -> Deduplicator:
    if title_key_length:
        return Deduplicator(title_key_length=title_key_length)
    return Deduplicator()


class ApplicationContainer(containers.DeclarativeContainer):
    """Central DI container for the search engine.

    Manages creation and lifecycle of:
    - one HTTP/Entrez client and one provider adapter per upstream
    - one ProviderCache per provider
    - the shared QualityScorer, Deduplicator and ResultAggregator
    - ``orchestrator``: the public entry point
    """

    config = providers.Configuration()

    scorer = providers.Singleton(QualityScorer)

    # Clients
    entrez_client = providers.Singleton(
        _create_entrez_client,
        email=config.ncbi_email,
        api_key=config.ncbi_api_key,
    )
    europe_pmc_client = providers.Singleton(
        _create_http_client, EuropePMCClient, timeout=config.provider_timeout
    )
    crossref_client = providers.Singleton(
        _create_http_client,
        CrossRefClient,
        timeout=config.provider_timeout,
        email=config.crossref_email,
    )
    semantic_scholar_client = providers.Singleton(
        _create_http_client,
        SemanticScholarClient,
        timeout=config.provider_timeout,
        api_key=config.s2_api_key,
    )
    web_search_client = providers.Singleton(
        _create_web_client,
        api_key=config.web_search_api_key,
        engine_id=config.web_search_engine_id,
        url=config.web_search_url,
        timeout=config.provider_timeout,
    )

    # Providers
    pubmed_provider = providers.Singleton(
        _create_provider,
        PubMedProvider,
        entrez_client,
        timeout=config.provider_timeout,
        cache=providers.Singleton(_create_cache, config.cache_ttl, config.cache_max_size),
        scorer=scorer,
        query_focus=config.query_focus,
    )
    europe_pmc_provider = providers.Singleton(
        _create_provider,
        EuropePMCProvider,
        europe_pmc_client,
        timeout=config.provider_timeout,
        cache=providers.Singleton(_create_cache, config.cache_ttl, config.cache_max_size),
        scorer=scorer,
        query_focus=config.query_focus,
    )
    semantic_scholar_provider = providers.Singleton(
        _create_provider,
        SemanticScholarProvider,
        semantic_scholar_client,
        timeout=config.provider_timeout,
        cache=providers.Singleton(_create_cache, config.cache_ttl, config.cache_max_size),
        scorer=scorer,
        query_focus=config.query_focus,
    )
    crossref_provider = providers.Singleton(
        _create_provider,
        CrossrefProvider,
        crossref_client,
        timeout=config.provider_timeout,
        cache=providers.Singleton(_create_cache, config.cache_ttl, config.cache_max_size),
        scorer=scorer,
        query_focus=config.query_focus,
    )
    web_search_provider = providers.Singleton(
        _create_provider,
        WebSearchProvider,
        web_search_client,
        timeout=config.provider_timeout,
        cache=providers.Singleton(_create_cache, config.cache_ttl, config.cache_max_size),
        scorer=scorer,
        query_focus=config.query_focus,
    )

    # Pipeline
    registry = providers.Singleton(
        _create_registry,
        pubmed_provider,
        europe_pmc_provider,
        semantic_scholar_provider,
        crossref_provider,
        web_search_provider,
    )
    deduplicator = providers.Singleton(_create_deduplicator, config.title_key_length)
    aggregator = providers.Singleton(ResultAggregator)
    orchestrator = providers.Singleton(
        _create_orchestrator,
        registry=registry,
        deduplicator=deduplicator,
        aggregator=aggregator,
        overall_timeout=config.overall_timeout,
    )


def create_container(settings: SearchSettings | None = None) -> ApplicationContainer:
    """Build a container configured from ``settings`` (default: environment)."""
    settings = settings or SearchSettings.from_env()
    container = ApplicationContainer()
    container.config.from_dict(settings.to_container_config())
    logger.debug(f"Container configured (focus={settings.query_focus.name})")
    return container


__all__ = ["ApplicationContainer", "create_container"]
