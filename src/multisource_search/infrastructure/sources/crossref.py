"""
Crossref Provider - DOI registry works search

API Documentation: https://api.crossref.org/swagger-ui/index.html

Rate Limits:
- Polite pool (with email): ~50 req/sec
- Anonymous: ~1 req/sec (strongly discouraged)

Best Practices:
- Always include email in User-Agent (polite pool)
- Use mailto: parameter for higher rate limits
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from multisource_search.core.exceptions import ParseError
from multisource_search.domain.entities import (
    ProviderType,
    UnifiedSource,
    format_publication_date,
)

from .base import SearchProvider
from .base_client import BaseAPIClient

if TYPE_CHECKING:
    import httpx

logger = logging.getLogger(__name__)

CROSSREF_API_BASE = "https://api.crossref.org"

# Default contact email (required for polite pool)
DEFAULT_EMAIL = "multisource-search@example.com"

OPEN_ACCESS_PUBLISHERS = ("PLOS", "BioMed Central", "Frontiers", "MDPI")
OPEN_LICENSE_MARKERS = ("creativecommons", "creative", "cc-by", "open")
UNSPECIFIED_LICENSE = "unspecified"

_JATS_TAG_RE = re.compile(r"<[^>]+>")


class CrossRefClient(BaseAPIClient):
    """
    Crossref API client for works search.

    Note:
        Always provide your email for access to the "polite pool" with
        higher rate limits. Without email, requests are severely throttled.
    """

    _service_name = "CrossRef"

    def __init__(
        self,
        email: str | None = None,
        timeout: float = 10.0,
        **kwargs: Any,
    ):
        """
        Initialize Crossref client.

        Args:
            email: Contact email for polite pool access (strongly recommended)
            timeout: Request timeout in seconds
        """
        self._email = email or DEFAULT_EMAIL
        super().__init__(
            base_url=CROSSREF_API_BASE,
            timeout=timeout,
            min_interval=0.05,
            headers={
                "User-Agent": f"multisource-search/1.0 (mailto:{self._email})",
                "Accept": "application/json",
            },
            **kwargs,
        )

    async def _execute_request(
        self,
        url: str,
        *,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Add mailto parameter for polite pool access."""
        params = {**(params or {}), "mailto": self._email}
        return await super()._execute_request(
            url, method=method, params=params, data=data, headers=headers
        )

    def _parse_response(self, response: httpx.Response, expect_json: bool) -> Any:
        """Extract 'message' key from Crossref JSON responses."""
        data = super()._parse_response(response, expect_json)
        if isinstance(data, dict):
            return data.get("message", data)
        return data

    async def search_works(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        """
        Search ``/works`` and return the raw ``items``.

        Raises:
            ParseError: Payload lacks the expected envelope
        """
        data = await self._make_request("/works", params=params)
        if not isinstance(data, dict) or not isinstance(data.get("items", []), list):
            raise ParseError("unexpected works payload", source=self._service_name)
        return data.get("items", [])


class CrossrefProvider(SearchProvider):
    """Crossref adapter."""

    provider_type = ProviderType.CROSSREF
    strategy = "Crossref DOI registry search"

    def __init__(self, client: CrossRefClient, **kwargs: Any) -> None:
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
            full_query += f" {self._focus_or_group()}"
        params: dict[str, Any] = {
            "query": full_query,
            "rows": min(limit, 1000),
            "sort": "relevance",
        }
        if include_abstracts:
            params["filter"] = "has-abstract:true"
        return params

    async def _fetch(self, params: dict[str, Any]) -> list[UnifiedSource]:
        items = await self._client.search_works(params)

        sources: list[UnifiedSource] = []
        for item in items:
            try:
                source = self._normalize_work(item)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Crossref: skipping malformed record: {e}")
                continue
            if source is not None:
                sources.append(source)
        return sources

    def _normalize_work(self, work: dict[str, Any]) -> UnifiedSource | None:
        """Map one Crossref work onto UnifiedSource (None if it lacks DOI or title)."""
        doi = (work.get("DOI") or "").strip()
        title = " ".join(work.get("title") or []).strip()
        if not doi or not title:
            return None

        license_url = self._license_url(work)
        journal = " ".join(work.get("container-title") or []).strip() or None

        return UnifiedSource(
            id=f"crossref_{doi}",
            provider_type=ProviderType.CROSSREF,
            title=title,
            authors=self._extract_authors(work),
            journal=journal,
            publication_date=self._extract_publication_date(work),
            doi=doi,
            url=work.get("URL") or f"https://doi.org/{doi}",
            abstract=self._clean_abstract(work.get("abstract")),
            citation_count=work.get("is-referenced-by-count", 0),
            references_count=work.get("references-count", 0),
            is_open_access=self._is_open_access(work, license_url),
            license=license_url,
            keywords=list(work.get("subject") or []),
            affiliations=self._extract_affiliations(work),
            publication_type=[work["type"]] if work.get("type") else [],
        )

    @staticmethod
    def _license_url(work: dict[str, Any]) -> str | None:
        """First license URL. Entries without a URL still count as licensed."""
        licenses = work.get("license") or []
        for lic in licenses:
            if lic.get("URL"):
                return lic["URL"]
        return UNSPECIFIED_LICENSE if licenses else None

    @staticmethod
    def _is_open_access(work: dict[str, Any], license_url: str | None) -> bool:
        if license_url and any(marker in license_url.lower() for marker in OPEN_LICENSE_MARKERS):
            return True
        publisher = work.get("publisher") or ""
        return any(name in publisher for name in OPEN_ACCESS_PUBLISHERS)

    @staticmethod
    def _extract_authors(work: dict[str, Any]) -> list[str]:
        authors = []
        for author in work.get("author") or []:
            name = f"{author.get('given', '')} {author.get('family', '')}".strip()
            if name:
                authors.append(name)
            elif author.get("name"):
                authors.append(author["name"])
        return authors

    @staticmethod
    def _extract_affiliations(work: dict[str, Any]) -> list[str]:
        affiliations: list[str] = []
        for author in work.get("author") or []:
            for aff in author.get("affiliation") or []:
                name = aff.get("name")
                if name and name not in affiliations:
                    affiliations.append(name)
        return affiliations

    @staticmethod
    def _extract_publication_date(work: dict[str, Any]) -> str:
        """
        Extract publication date from Crossref work.

        Priority: published > published-online > published-print > created
        """
        for field in ("published", "published-online", "published-print", "created"):
            date_parts = (work.get(field) or {}).get("date-parts") or [[]]
            parts = date_parts[0] if date_parts else []
            if parts and parts[0]:
                month = parts[1] if len(parts) >= 2 else None
                day = parts[2] if len(parts) >= 3 else None
                return format_publication_date(parts[0], month, day) or ""
        return ""

    @staticmethod
    def _clean_abstract(abstract: str | None) -> str | None:
        """Strip JATS markup (``<jats:p>`` etc.) from Crossref abstracts."""
        if not abstract:
            return None
        text = _JATS_TAG_RE.sub(" ", abstract)
        text = re.sub(r"\s+", " ", text).strip()
        return text or None
