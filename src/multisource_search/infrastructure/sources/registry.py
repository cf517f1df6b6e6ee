"""
Provider Registry

Ordered collection of provider adapters, built once and injected into the
orchestrator. Registration order is the default priority order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from multisource_search.domain.entities import ProviderType

from .base import SearchProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """
    Ordered mapping of ProviderType -> SearchProvider.

    Example:
        registry = ProviderRegistry([pubmed, europe_pmc, crossref])
        registry.get(ProviderType.CROSSREF)
        registry.select([ProviderType.CROSSREF, ProviderType.PUBMED])
    """

    def __init__(self, providers: Iterable[SearchProvider] = ()) -> None:
        self._providers: dict[ProviderType, SearchProvider] = {}
        for provider in providers:
            self.register(provider)

    def register(self, provider: SearchProvider) -> None:
        """Add a provider, replacing any existing one of the same type."""
        if provider.provider_type in self._providers:
            logger.info(f"Replacing registered provider: {provider.name}")
        self._providers[provider.provider_type] = provider

    def get(self, provider_type: ProviderType) -> SearchProvider | None:
        return self._providers.get(provider_type)

    def select(self, order: Iterable[ProviderType]) -> list[SearchProvider]:
        """Return registered providers in the requested order, skipping unknown ones."""
        selected = []
        for provider_type in order:
            provider = self._providers.get(provider_type)
            if provider is None:
                logger.warning(f"Provider not registered, skipping: {provider_type.value}")
                continue
            selected.append(provider)
        return selected

    def clear_caches(self) -> int:
        """Clear every provider cache. Returns total entries removed."""
        return sum(provider.clear_cache() for provider in self)

    async def aclose(self) -> None:
        """Close all providers' network resources."""
        for provider in self:
            await provider.close()

    @property
    def provider_types(self) -> list[ProviderType]:
        return list(self._providers)

    def __contains__(self, provider_type: object) -> bool:
        return provider_type in self._providers

    def __iter__(self) -> Iterator[SearchProvider]:
        return iter(self._providers.values())

    def __len__(self) -> int:
        return len(self._providers)
