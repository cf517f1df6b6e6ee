"""
Semantic Scholar Provider - Graph API paper search

API Documentation: https://api.semanticscholar.org/api-docs/

Features:
- AI-generated TL;DR summaries
- Influential citation counts
- External ids (DOI, PubMed) for cross-provider deduplication
"""

from __future__ import annotations

import logging
from typing import Any

from multisource_search.core.exceptions import ParseError
from multisource_search.domain.entities import ProviderType, UnifiedSource

from .base import SearchProvider
from .base_client import BaseAPIClient

logger = logging.getLogger(__name__)

S2_API_BASE = "https://api.semanticscholar.org/graph/v1"

SEARCH_FIELDS = [
    "paperId",
    "title",
    "abstract",
    "year",
    "publicationDate",
    "authors.name",
    "authors.affiliations",
    "venue",
    "journal",
    "citationCount",
    "influentialCitationCount",
    "isOpenAccess",
    "openAccessPdf",
    "externalIds",
    "fieldsOfStudy",
    "publicationTypes",
    "tldr",
    "url",
]

FIELDS_OF_STUDY = "Medicine,Biology"


class SemanticScholarClient(BaseAPIClient):
    """
    Semantic Scholar API client.

    Usage:
        client = SemanticScholarClient(api_key="...")
        papers = await client.search_papers({"query": "macular degeneration", "limit": 10})
    """

    _service_name = "Semantic Scholar"

    def __init__(self, api_key: str | None = None, timeout: float = 10.0, **kwargs: Any):
        """
        Initialize client.

        Args:
            api_key: Optional S2 API key (raises the shared rate limit)
            timeout: Request timeout in seconds
        """
        headers = {
            "Accept": "application/json",
            "User-Agent": "multisource-search/1.0",
        }
        if api_key:
            headers["x-api-key"] = api_key
        super().__init__(
            base_url=S2_API_BASE,
            timeout=timeout,
            min_interval=0.5,  # Conservative rate limiting
            headers=headers,
            **kwargs,
        )

    async def search_papers(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        """
        Run ``/paper/search`` and return the raw ``data`` list.

        Raises:
            ParseError: Payload lacks the expected envelope
        """
        data = await self._make_request("/paper/search", params=params)
        if not isinstance(data, dict) or not isinstance(data.get("data", []), list):
            raise ParseError("unexpected search payload", source=self._service_name)
        return data.get("data", [])


class SemanticScholarProvider(SearchProvider):
    """Semantic Scholar adapter."""

    provider_type = ProviderType.SEMANTIC_SCHOLAR
    strategy = "Semantic Scholar AI-powered search"

    def __init__(self, client: SemanticScholarClient, **kwargs: Any) -> None:
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
            "limit": min(limit, 100),
            "fields": ",".join(SEARCH_FIELDS),
            "fieldsOfStudy": FIELDS_OF_STUDY,
        }
        if only_open_access:
            params["openAccessPdf"] = ""  # Only papers with OA PDF
        return params

    async def _fetch(self, params: dict[str, Any]) -> list[UnifiedSource]:
        papers = await self._client.search_papers(params)

        sources: list[UnifiedSource] = []
        for paper in papers:
            try:
                source = self._normalize_paper(paper)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Semantic Scholar: skipping malformed record: {e}")
                continue
            if source is not None:
                sources.append(source)
        return sources

    def _normalize_paper(self, paper: dict[str, Any]) -> UnifiedSource | None:
        """Map one S2 paper onto UnifiedSource (None if it lacks id or title)."""
        paper_id = paper.get("paperId")
        title = (paper.get("title") or "").strip()
        if not paper_id or not title:
            return None

        external_ids = paper.get("externalIds") or {}
        pdf = paper.get("openAccessPdf") or {}
        pdf_url = pdf.get("url") or None
        tldr = paper.get("tldr") or {}
        journal = (paper.get("journal") or {}).get("name") or paper.get("venue") or None

        return UnifiedSource(
            id=f"ss_{paper_id}",
            provider_type=ProviderType.SEMANTIC_SCHOLAR,
            title=title,
            authors=[a["name"] for a in paper.get("authors") or [] if a.get("name")],
            journal=journal,
            publication_date=self._extract_date(paper),
            doi=external_ids.get("DOI") or None,
            pmid=str(external_ids["PubMed"]) if external_ids.get("PubMed") else None,
            url=paper.get("url") or f"https://www.semanticscholar.org/paper/{paper_id}",
            abstract=(paper.get("abstract") or "").strip() or None,
            ai_summary=tldr.get("text") or None,
            citation_count=paper.get("citationCount") or 0,
            influential_citation_count=paper.get("influentialCitationCount") or 0,
            is_open_access=bool(pdf_url),
            full_text_url=pdf_url,
            pdf_url=pdf_url,
            keywords=list(paper.get("fieldsOfStudy") or []),
            affiliations=self._extract_affiliations(paper),
            publication_type=list(paper.get("publicationTypes") or []),
        )

    @staticmethod
    def _extract_date(paper: dict[str, Any]) -> str:
        if paper.get("publicationDate"):
            return paper["publicationDate"]
        if paper.get("year"):
            return f"{paper['year']}-01-01"
        return ""

    @staticmethod
    def _extract_affiliations(paper: dict[str, Any]) -> list[str]:
        affiliations: list[str] = []
        for author in paper.get("authors") or []:
            for affiliation in author.get("affiliations") or []:
                if affiliation and affiliation not in affiliations:
                    affiliations.append(affiliation)
        return affiliations
