"""
Europe PMC Provider - REST search API (resultType=core)

API Documentation: https://europepmc.org/RestfulWebService

Features:
- 33M+ publications (PubMed, PMC, preprints, patents, agricola)
- Open access flag and text-mined full-text availability per record
- Citation counts (citedByCount)
- No API key required
"""

from __future__ import annotations

import logging
from typing import Any

from multisource_search.core.exceptions import ParseError
from multisource_search.domain.entities import ProviderType, UnifiedSource

from .base import SearchProvider
from .base_client import BaseAPIClient

logger = logging.getLogger(__name__)

EPMC_API_BASE = "https://www.ebi.ac.uk/europepmc/webservices/rest"
PMC_ARTICLE_BASE = "https://www.ncbi.nlm.nih.gov/pmc/articles"


class EuropePMCClient(BaseAPIClient):
    """Async Europe PMC REST client."""

    _service_name = "Europe PMC"

    def __init__(self, timeout: float = 10.0, **kwargs: Any) -> None:
        super().__init__(
            base_url=EPMC_API_BASE,
            timeout=timeout,
            min_interval=0.1,
            headers={"Accept": "application/json"},
            **kwargs,
        )

    async def search(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        """
        Run a search and return the raw ``resultList.result`` items.

        Raises:
            ParseError: Payload lacks the expected envelope
        """
        data = await self._make_request("/search", params=params)
        if not isinstance(data, dict):
            raise ParseError("unexpected payload type", source=self._service_name)
        results = data.get("resultList", {}).get("result", [])
        if not isinstance(results, list):
            raise ParseError("resultList.result is not a list", source=self._service_name)
        return results


class EuropePMCProvider(SearchProvider):
    """Europe PMC adapter."""

    provider_type = ProviderType.EUROPE_PMC
    strategy = "Europe PMC comprehensive biomedical search"

    def __init__(self, client: EuropePMCClient, **kwargs: Any) -> None:
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
            full_query += f" AND ({self._focus_or_group()})"
        if only_open_access:
            full_query += " AND (OPEN_ACCESS:y)"
        return {
            "query": full_query,
            "format": "json",
            "resultType": "core",
            "pageSize": min(limit, 1000),
            "cursorMark": "*",
            "includeFullText": include_abstracts,
        }

    async def _fetch(self, params: dict[str, Any]) -> list[UnifiedSource]:
        include_full_text = params["includeFullText"]
        request = {k: v for k, v in params.items() if k != "includeFullText"}
        items = await self._client.search(request)

        sources: list[UnifiedSource] = []
        for item in items:
            try:
                sources.append(self._normalize_article(item, include_full_text))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Europe PMC: skipping malformed record: {e}")
        return sources

    def _normalize_article(self, item: dict[str, Any], include_full_text: bool) -> UnifiedSource:
        """Map one Europe PMC ``core`` result onto UnifiedSource."""
        title = (item.get("title") or "").strip()
        if not title:
            raise ValueError("record without title")

        pmid = item.get("pmid") or None
        doi = item.get("doi") or None
        native_id = item.get("id") or pmid or item.get("pmcid")
        record_id = native_id or doi
        if not record_id:
            raise ValueError("record without id, pmid, pmcid or doi")
        pmcid = self._normalize_pmcid(item.get("pmcid"))
        has_full_text = item.get("hasTextMinedTerms") == "Y"

        full_text_url = None
        pdf_url = None
        if include_full_text and has_full_text and pmcid:
            full_text_url = f"{EPMC_API_BASE}/{pmcid}/fullTextXML"
            pdf_url = f"{PMC_ARTICLE_BASE}/{pmcid}/pdf/"

        journal = (
            item.get("journalInfo", {}).get("journal", {}).get("title")
            or item.get("journalTitle")
            or None
        )

        return UnifiedSource(
            id=f"europepmc_{record_id}",
            provider_type=ProviderType.EUROPE_PMC,
            title=title,
            authors=self._extract_authors(item),
            journal=journal,
            publication_date=self._extract_date(item),
            doi=doi,
            pmid=pmid,
            url=full_text_url or self._article_url(pmid or native_id, doi),
            abstract=(item.get("abstractText") or "").strip() or None,
            citation_count=item.get("citedByCount", 0),
            is_open_access=item.get("isOpenAccess") == "Y",
            has_full_text=has_full_text,
            full_text_url=full_text_url,
            pdf_url=pdf_url,
            keywords=list(item.get("keywordList", {}).get("keyword", [])),
            mesh_terms=[
                mesh["descriptorName"]
                for mesh in item.get("meshHeadingList", {}).get("meshHeading", [])
                if mesh.get("descriptorName")
            ],
            affiliations=self._extract_affiliations(item),
            publication_type=list(item.get("pubTypeList", {}).get("pubType", [])),
        )

    @staticmethod
    def _article_url(native_id: str | None, doi: str | None) -> str:
        if native_id:
            return f"https://europepmc.org/article/MED/{native_id}"
        return f"https://doi.org/{doi}"

    @staticmethod
    def _normalize_pmcid(pmcid: str | None) -> str | None:
        if not pmcid:
            return None
        pmcid = str(pmcid).strip()
        return pmcid if pmcid.upper().startswith("PMC") else f"PMC{pmcid}"

    @staticmethod
    def _extract_authors(item: dict[str, Any]) -> list[str]:
        authors = []
        for author in item.get("authorList", {}).get("author", []):
            first = author.get("firstName")
            last = author.get("lastName")
            if first and last:
                authors.append(f"{first} {last}")
            elif author.get("initials") and last:
                authors.append(f"{author['initials']} {last}")
            elif author.get("fullName"):
                authors.append(author["fullName"])
        if not authors and item.get("authorString"):
            authors = [a.strip() for a in item["authorString"].rstrip(".").split(",") if a.strip()]
        return authors

    @staticmethod
    def _extract_date(item: dict[str, Any]) -> str:
        if item.get("firstPublicationDate"):
            return item["firstPublicationDate"]
        if item.get("electronicPublicationDate"):
            return item["electronicPublicationDate"]
        year = item.get("journalInfo", {}).get("yearOfPublication") or item.get("pubYear")
        return f"{year}-01-01" if year else ""

    @staticmethod
    def _extract_affiliations(item: dict[str, Any]) -> list[str]:
        affiliations: list[str] = []

        def add(value: str | None) -> None:
            if value and value not in affiliations:
                affiliations.append(value)

        add(item.get("affiliation"))
        for author in item.get("authorList", {}).get("author", []):
            add(author.get("affiliation"))
            details = author.get("authorAffiliationDetailsList", {}).get("authorAffiliation", [])
            for detail in details:
                add(detail.get("affiliation"))
        return affiliations
