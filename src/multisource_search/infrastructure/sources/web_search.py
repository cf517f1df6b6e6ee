"""
Web Search Provider - generic web results via a Programmable Search JSON API

Default endpoint: Google Programmable Search (Custom Search JSON API).
Any endpoint returning ``items[]`` with ``title``/``link``/``snippet``/``pagemap``
works. Requires an API key and a search engine id; without them the provider
reports a ConfigurationError (logged, empty result).

Web results carry no citations or identifiers, so they score low unless the
URL belongs to a recognized medical-authority domain.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from multisource_search.config import DEFAULT_WEB_SEARCH_URL
from multisource_search.core.exceptions import ConfigurationError, ErrorContext, ParseError
from multisource_search.domain.entities import ProviderType, UnifiedSource, parse_publication_date

from .base import SearchProvider
from .base_client import BaseAPIClient

logger = logging.getLogger(__name__)

MAX_RESULTS_PER_CALL = 10  # hard API limit

OPEN_ACCESS_DOMAINS = (
    "pubmed.ncbi.nlm.nih.gov",
    "ncbi.nlm.nih.gov/pmc",
    "cochrane.org",
    "plos.org",
    "frontiersin.org",
    "biomedcentral.com",
)

# Metatags that commonly carry a publication date, in preference order
DATE_METATAGS = (
    "citation_publication_date",
    "citation_date",
    "article:published_time",
    "dc.date",
    "og:updated_time",
)


class WebSearchClient(BaseAPIClient):
    """Async client for a Programmable Search-compatible JSON endpoint."""

    _service_name = "Web search"

    def __init__(
        self,
        api_key: str | None = None,
        engine_id: str | None = None,
        url: str = DEFAULT_WEB_SEARCH_URL,
        timeout: float = 10.0,
        **kwargs: Any,
    ) -> None:
        self._api_key = api_key
        self._engine_id = engine_id
        self._url = url
        super().__init__(
            timeout=timeout,
            min_interval=0.1,
            headers={"Accept": "application/json"},
            **kwargs,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key and self._engine_id)

    async def search(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        """
        Run one search and return the raw ``items``.

        Raises:
            ConfigurationError: API key or engine id missing
            ParseError: Payload lacks the expected envelope
        """
        if not self.is_configured:
            raise ConfigurationError(
                "Web search requires WEB_SEARCH_API_KEY and WEB_SEARCH_ENGINE_ID",
                context=ErrorContext(provider=self._service_name),
            )
        request = {**params, "key": self._api_key, "cx": self._engine_id}
        data = await self._make_request(self._url, params=request)
        if not isinstance(data, dict) or not isinstance(data.get("items", []), list):
            raise ParseError("unexpected search payload", source=self._service_name)
        # No "items" key means zero hits
        return data.get("items", [])


class WebSearchProvider(SearchProvider):
    """Generic web search adapter."""

    provider_type = ProviderType.WEB_SEARCH
    strategy = "General web search for clinical guidance"

    def __init__(self, client: WebSearchClient, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._client = client

    async def close(self) -> None:
        await self._client.close()

    def resolve_params(
        self,
        query: str,
        limit: int,
        *,
        include_abstracts: bool = True,
        only_open_access: bool = False,
    ) -> dict[str, Any]:
        full_query = query.strip()
        if self._focus.applies_to(full_query):
            full_query += f" {self._focus.primary_term}"
        return {"q": full_query, "num": max(1, min(limit, MAX_RESULTS_PER_CALL))}

    async def _fetch(self, params: dict[str, Any]) -> list[UnifiedSource]:
        items = await self._client.search(params)
        today = date.today().isoformat()

        sources: list[UnifiedSource] = []
        for index, item in enumerate(items):
            try:
                source = self._normalize_item(item, index, today)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Web search: skipping malformed result {index}: {e}")
                continue
            if source is not None:
                sources.append(source)
        return sources

    def _normalize_item(self, item: dict[str, Any], index: int, today: str) -> UnifiedSource | None:
        """Map one search item onto UnifiedSource (None if it lacks link or title)."""
        link = item.get("link") or ""
        title = (item.get("title") or "").strip()
        if not link or not title:
            logger.debug(f"Web search: skipping result {index} without link/title")
            return None

        metatags = self._metatags(item)
        return UnifiedSource(
            id=f"web_search_{index}",
            provider_type=ProviderType.WEB_SEARCH,
            title=title,
            authors=self._authors(metatags),
            journal=metatags.get("citation_journal_title") or item.get("displayLink"),
            publication_date=self._publication_date(metatags) or today,
            doi=metatags.get("citation_doi") or None,
            url=link,
            abstract=(item.get("snippet") or "").strip() or None,
            is_open_access=is_open_access_url(link),
            publication_type=["web"],
        )

    @staticmethod
    def _metatags(item: dict[str, Any]) -> dict[str, str]:
        """First metatag block with every value coerced to a string."""
        tags = (item.get("pagemap") or {}).get("metatags") or [{}]
        first = tags[0] if isinstance(tags, list) and tags and isinstance(tags[0], dict) else {}
        return {str(key): str(value) for key, value in first.items() if value not in (None, "")}

    @staticmethod
    def _authors(metatags: dict[str, str]) -> list[str]:
        author = metatags.get("citation_author") or metatags.get("author")
        return [author] if author else []

    @staticmethod
    def _publication_date(metatags: dict[str, str]) -> str | None:
        for tag in DATE_METATAGS:
            value = metatags.get(tag)
            parsed = parse_publication_date(value.replace("/", "-")) if value else None
            if parsed:
                return parsed.isoformat()
        return None


def is_open_access_url(url: str) -> bool:
    lowered = url.lower()
    return any(domain in lowered for domain in OPEN_ACCESS_DOMAINS)
