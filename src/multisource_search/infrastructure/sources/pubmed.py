"""
PubMed Provider - NCBI Entrez esearch + efetch

Uses Biopython's Bio.Entrez for the E-utilities round trip:
1. esearch  -> PMID list for the (cleaned, focus-augmented) term
2. efetch   -> MEDLINE XML for those PMIDs, parsed by Entrez.read

Entrez is synchronous, so each call runs via ``asyncio.to_thread``.
Cancelling the awaiting coroutine (provider timeout) does not stop the
worker thread; the request runs to completion in the background and its
result is discarded.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Any

from Bio import Entrez
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from multisource_search.core.exceptions import (
    ErrorContext,
    NetworkError,
    ParseError,
    ServiceUnavailableError,
    is_retryable_error,
)
from multisource_search.domain.entities import (
    ProviderType,
    UnifiedSource,
    format_publication_date,
)

from .base import SearchProvider

logger = logging.getLogger(__name__)

# Retry settings for transient NCBI errors
MAX_RETRIES = 3
RETRY_DELAY = 1  # seconds

MAX_QUERY_LENGTH = 100


def _is_retryable_ncbi(error: BaseException) -> bool:
    """Check if an NCBI error is retryable."""
    return not isinstance(error, ValueError) and is_retryable_error(error)


class EntrezClient:
    """
    Thin async wrapper over Bio.Entrez with rate limiting and retry.

    NCBI allows 3 requests/second without an API key and 10 with one.
    """

    def __init__(self, email: str, api_key: str | None = None):
        """
        Initialize Entrez configuration.

        Args:
            email: Email address required by NCBI Entrez API.
            api_key: Optional NCBI API key for higher rate limits (10/sec vs 3/sec).
        """
        Entrez.email = email  # type: ignore[assignment]
        if api_key:
            Entrez.api_key = api_key  # type: ignore[assignment]
        Entrez.max_tries = 1  # retries are handled by tenacity

        self._min_interval = 0.1 if api_key else 0.34
        self._last_request_time = 0.0
        self._lock = asyncio.Lock()

    async def _rate_limit(self) -> None:
        """Ensure minimum interval between API requests."""
        async with self._lock:
            elapsed = time.monotonic() - self._last_request_time
            if elapsed < self._min_interval:
                await asyncio.sleep(self._min_interval - elapsed)
            self._last_request_time = time.monotonic()

    @retry(
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential(multiplier=RETRY_DELAY, min=RETRY_DELAY, max=RETRY_DELAY * 4),
        retry=retry_if_exception(_is_retryable_ncbi),
        reraise=True,
    )
    async def esearch(self, term: str, retmax: int) -> list[str]:
        """Search PubMed and return matching PMIDs (relevance order)."""
        await self._rate_limit()
        handle = await asyncio.to_thread(
            Entrez.esearch, db="pubmed", term=term, retmax=retmax, sort="relevance"
        )
        try:
            record = await asyncio.to_thread(Entrez.read, handle)
        finally:
            handle.close()
        return [str(pmid) for pmid in record.get("IdList", [])]

    @retry(
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential(multiplier=RETRY_DELAY, min=RETRY_DELAY, max=RETRY_DELAY * 4),
        retry=retry_if_exception(_is_retryable_ncbi),
        reraise=True,
    )
    async def efetch(self, id_list: list[str]) -> dict[str, Any]:
        """Fetch and parse MEDLINE XML records for the given PMIDs."""
        await self._rate_limit()
        handle = await asyncio.to_thread(
            Entrez.efetch, db="pubmed", id=",".join(id_list), retmode="xml"
        )
        try:
            return await asyncio.to_thread(Entrez.read, handle)
        finally:
            handle.close()


class PubMedProvider(SearchProvider):
    """PubMed MEDLINE adapter."""

    provider_type = ProviderType.PUBMED
    strategy = "PubMed MEDLINE database search"

    def __init__(self, client: EntrezClient, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._client = client

    def resolve_params(
        self,
        query: str,
        limit: int,
        *,
        include_abstracts: bool = True,
        only_open_access: bool = False,
    ) -> dict[str, Any]:
        term = re.sub(r"[^\w\s]", " ", query)
        term = re.sub(r"\s+", " ", term).strip()[:MAX_QUERY_LENGTH]
        if self._focus.applies_to(term):
            term = f"{term} {self._focus.primary_term}"
        if only_open_access:
            term = f"{term} AND free full text[sb]"
        return {
            "term": term,
            "retmax": limit,
            "include_abstracts": include_abstracts,
        }

    async def _fetch(self, params: dict[str, Any]) -> list[UnifiedSource]:
        context = ErrorContext(provider=self.name, input_value=params["term"])
        try:
            pmids = await self._client.esearch(params["term"], params["retmax"])
            if not pmids:
                return []
            papers = await self._client.efetch(pmids)
        except ValueError as e:
            # Bio.Entrez parser errors (NotXMLError, CorruptedXMLError, ValidationError)
            raise ParseError(str(e), source="PubMed", context=context) from e
        except RuntimeError as e:
            raise ServiceUnavailableError(str(e), service="PubMed", context=context) from e
        except OSError as e:
            raise NetworkError(f"PubMed request failed: {e}", context=context) from e

        sources: list[UnifiedSource] = []
        for article in papers.get("PubmedArticle", []):
            try:
                sources.append(self._parse_article(article, params["include_abstracts"]))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"PubMed: skipping malformed record: {e}")
        return sources

    def _parse_article(self, article: dict, include_abstracts: bool) -> UnifiedSource:
        """Map one PubmedArticle record onto UnifiedSource."""
        medline_citation = article["MedlineCitation"]
        article_data = medline_citation["Article"]
        pubmed_data = article.get("PubmedData", {})

        pmid = str(medline_citation["PMID"])
        if not pmid:
            raise ValueError("record without PMID")

        authors, affiliations = self._extract_authors(article_data)
        doi, pmc_id = self._extract_identifiers(pubmed_data)
        journal_data = article_data.get("Journal", {})
        abstract = self._extract_abstract(article_data) if include_abstracts else ""

        return UnifiedSource(
            id=f"pubmed_{pmid}",
            provider_type=ProviderType.PUBMED,
            title=str(article_data.get("ArticleTitle", "")).strip() or "Untitled",
            authors=authors,
            journal=str(journal_data["Title"]) if "Title" in journal_data else None,
            publication_date=self._extract_publication_date(journal_data),
            doi=doi or None,
            pmid=pmid,
            url=f"https://pubmed.ncbi.nlm.nih.gov/{pmid}/",
            abstract=abstract or None,
            is_open_access=bool(pmc_id),
            full_text_url=f"https://www.ncbi.nlm.nih.gov/pmc/articles/{pmc_id}/" if pmc_id else None,
            keywords=self._extract_keywords(medline_citation),
            mesh_terms=self._extract_mesh_terms(medline_citation),
            affiliations=affiliations,
            publication_type=[str(pt) for pt in article_data.get("PublicationTypeList", [])],
        )

    @staticmethod
    def _extract_authors(article_data: dict) -> tuple[list[str], list[str]]:
        """Extract display names and de-duplicated affiliations."""
        authors: list[str] = []
        affiliations: list[str] = []

        for author in article_data.get("AuthorList", []):
            if "LastName" in author:
                fore_name = author.get("ForeName", "")
                authors.append(f"{fore_name} {author['LastName']}".strip())
                for aff_info in author.get("AffiliationInfo", []):
                    affiliation = str(aff_info.get("Affiliation", "")).strip()
                    if affiliation and affiliation not in affiliations:
                        affiliations.append(affiliation)
            elif "CollectiveName" in author:
                authors.append(str(author["CollectiveName"]))

        return authors, affiliations

    @staticmethod
    def _extract_abstract(article_data: dict) -> str:
        """Extract abstract text from article data."""
        if "Abstract" in article_data and "AbstractText" in article_data["Abstract"]:
            abstract_parts = article_data["Abstract"]["AbstractText"]
            if isinstance(abstract_parts, list):
                return " ".join(str(part) for part in abstract_parts).strip()
            return str(abstract_parts).strip()
        return ""

    @staticmethod
    def _extract_publication_date(journal_data: dict) -> str:
        """PubDate Year/Month/Day, falling back to the year of MedlineDate."""
        pub_date = journal_data.get("JournalIssue", {}).get("PubDate", {})
        year = pub_date.get("Year", "")
        if not year and "MedlineDate" in pub_date:
            year_match = re.search(r"(\d{4})", str(pub_date["MedlineDate"]))
            if year_match:
                year = year_match.group(1)
        if not year:
            return ""
        return format_publication_date(year, pub_date.get("Month"), pub_date.get("Day")) or ""

    @staticmethod
    def _extract_identifiers(pubmed_data: dict) -> tuple[str, str]:
        """Extract DOI and PMC ID from article identifiers."""
        doi = ""
        pmc_id = ""

        for aid in pubmed_data.get("ArticleIdList", []):
            if hasattr(aid, "attributes"):
                if aid.attributes.get("IdType") == "doi":
                    doi = str(aid)
                elif aid.attributes.get("IdType") == "pmc":
                    pmc_id = str(aid)

        return doi, pmc_id

    @staticmethod
    def _extract_keywords(medline_citation: dict) -> list[str]:
        keywords = []
        for kw_list in medline_citation.get("KeywordList", []):
            keywords.extend(str(kw) for kw in kw_list)
        return keywords

    @staticmethod
    def _extract_mesh_terms(medline_citation: dict) -> list[str]:
        mesh_terms = []
        for mesh in medline_citation.get("MeshHeadingList", []):
            if "DescriptorName" in mesh:
                mesh_terms.append(str(mesh["DescriptorName"]))
        return mesh_terms
