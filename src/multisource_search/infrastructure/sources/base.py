"""
Search Provider contract.

A provider adapter turns the common query into one upstream request,
parses the native payload into UnifiedSource records, scores them and
caches the scored list. Failures never escape ``search()``: they are
logged and reported as an empty list so one broken provider cannot sink
the fan-out.

Architecture Decision:
    Scoring happens here, before the records are cached, so a cache hit
    returns records with the scores computed on the original fetch. The
    cache key holds the raw query next to the request params, and the raw
    query is what relevance is computed from, so the reused scores are
    always the right ones.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import httpx

from multisource_search.config import QueryFocus
from multisource_search.core.exceptions import MultiSourceSearchError
from multisource_search.domain.entities import ProviderType, UnifiedSource
from multisource_search.infrastructure.cache import ProviderCache, canonical_cache_key

if TYPE_CHECKING:
    from multisource_search.application.search.scoring import QualityScorer

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_TIMEOUT = 10.0


class SearchProvider(ABC):
    """
    Base class for provider adapters.

    Subclasses set ``provider_type`` and ``strategy`` and implement:
    - ``resolve_params()``: common query -> provider request parameters
    - ``_fetch()``: request parameters -> parsed UnifiedSource list
    """

    provider_type: ProviderType
    strategy: str = ""

    def __init__(
        self,
        *,
        cache: ProviderCache | None = None,
        scorer: QualityScorer | None = None,
        timeout: float = DEFAULT_PROVIDER_TIMEOUT,
        query_focus: QueryFocus | None = None,
    ) -> None:
        self._cache = cache if cache is not None else ProviderCache()
        self._scorer = scorer
        self._timeout = timeout
        self._focus = query_focus if query_focus is not None else QueryFocus.ophthalmology()

    @property
    def name(self) -> str:
        return self.provider_type.value

    @property
    def cache(self) -> ProviderCache:
        return self._cache

    @abstractmethod
    def resolve_params(
        self,
        query: str,
        limit: int,
        *,
        include_abstracts: bool = True,
        only_open_access: bool = False,
    ) -> dict[str, Any]:
        """Translate the common query into this provider's request parameters."""

    @abstractmethod
    async def _fetch(self, params: dict[str, Any]) -> list[UnifiedSource]:
        """Call the upstream API and parse its payload."""

    async def search(
        self,
        query: str,
        limit: int,
        *,
        include_abstracts: bool = True,
        only_open_access: bool = False,
    ) -> list[UnifiedSource]:
        """
        Search this provider.

        Returns:
            Scored records (possibly from cache); empty list on any failure.
        """
        params = self.resolve_params(
            query,
            limit,
            include_abstracts=include_abstracts,
            only_open_access=only_open_access,
        )
        key = canonical_cache_key(self.name, {"raw_query": query, "params": params})

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug(f"{self.name}: cache hit ({len(cached)} records)")
            return list(cached)

        try:
            sources = await asyncio.wait_for(self._fetch(params), timeout=self._timeout)
        except TimeoutError:
            logger.warning(f"{self.name}: timed out after {self._timeout}s")
            return []
        except (MultiSourceSearchError, httpx.HTTPError) as e:
            logger.warning(f"{self.name}: search failed: {e}")
            return []

        if self._scorer is not None:
            self._scorer.score_all(sources, query)

        self._cache.set(key, sources)
        logger.info(f"{self.name}: {len(sources)} records for '{query}'")
        return list(sources)

    def clear_cache(self) -> int:
        return self._cache.clear()

    async def close(self) -> None:
        """Release network resources. Default: nothing to release."""

    def _focus_or_group(self) -> str:
        return " OR ".join(self._focus.filter_terms)
