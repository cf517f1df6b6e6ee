"""
UnifiedSource - Normalized Record Shared by All Providers

Every provider adapter maps its native payload into this one shape so that
deduplication, scoring and ranking never need to know where a record came
from.

Architecture Decision:
    We use dataclasses instead of Pydantic for:
    1. Lightweight - no external dependency
    2. Performance - records are created by the hundred per request
    3. Simplicity - scorer mutates the score fields in place

Example:
    >>> source = UnifiedSource(
    ...     id="pubmed_12345678",
    ...     provider_type=ProviderType.PUBMED,
    ...     title="Anti-VEGF therapy in AMD",
    ...     publication_date="2023-04-01",
    ...     url="https://pubmed.ncbi.nlm.nih.gov/12345678/",
    ...     pmid="12345678",
    ... )
    >>> source.published_on()
    datetime.date(2023, 4, 1)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any


class ProviderType(Enum):
    """Upstream bibliographic providers."""
    PUBMED = "pubmed"
    EUROPE_PMC = "europepmc"
    CROSSREF = "crossref"
    SEMANTIC_SCHOLAR = "semantic_scholar"
    WEB_SEARCH = "web_search"

    @classmethod
    def canonical_order(cls) -> list[ProviderType]:
        """Default priority: curated biomedical indexes first, web last."""
        return [
            cls.PUBMED,
            cls.EUROPE_PMC,
            cls.SEMANTIC_SCHOLAR,
            cls.CROSSREF,
            cls.WEB_SEARCH,
        ]


_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

_ISO_DATE_RE = re.compile(r"^(\d{4})(?:-(\d{1,2}))?(?:-(\d{1,2}))?")


def _month_number(month: Any) -> int | None:
    if month is None or month == "":
        return None
    if isinstance(month, int):
        return month if 1 <= month <= 12 else None
    text = str(month).strip()
    if text.isdigit():
        value = int(text)
        return value if 1 <= value <= 12 else None
    return _MONTHS.get(text[:3].lower())


def format_publication_date(year: Any, month: Any = None, day: Any = None) -> str | None:
    """
    Build an ISO ``YYYY-MM-DD`` string from loose date parts.

    Missing month/day default to 01. Month names ("Mar", "March") and
    numeric strings are accepted. Returns None when the year is unusable.
    """
    try:
        year_value = int(str(year).strip()[:4])
    except (TypeError, ValueError):
        return None
    if not 1 <= year_value <= 9999:
        return None

    month_value = _month_number(month) or 1
    try:
        day_value = int(str(day).strip()) if day not in (None, "") else 1
    except ValueError:
        day_value = 1

    try:
        return date(year_value, month_value, day_value).isoformat()
    except ValueError:
        return date(year_value, month_value, 1).isoformat()


def parse_publication_date(value: str | None) -> date | None:
    """Parse ``YYYY``, ``YYYY-MM`` or ``YYYY-MM-DD`` (trailing text ignored)."""
    if not value:
        return None
    match = _ISO_DATE_RE.match(value.strip())
    if not match:
        return None
    year, month, day = match.groups()
    try:
        return date(int(year), int(month or 1), int(day or 1))
    except ValueError:
        return None


@dataclass
class UnifiedSource:
    """
    One bibliographic record, normalized across providers.

    Score fields are filled by the QualityScorer right after parsing;
    quality/relevance/authority are bounded to [0, 100], impact is an
    unbounded non-negative signal (citation based).
    """

    # === Identity ===
    id: str
    provider_type: ProviderType
    title: str
    publication_date: str
    url: str

    # === Bibliographic ===
    authors: list[str] = field(default_factory=list)
    journal: str | None = None
    doi: str | None = None
    pmid: str | None = None
    abstract: str | None = None
    ai_summary: str | None = None

    # === Access ===
    is_open_access: bool = False
    full_text_url: str | None = None
    pdf_url: str | None = None
    license: str | None = None

    # === Provider-native signals used by scoring ===
    citation_count: int = 0
    influential_citation_count: int = 0
    references_count: int = 0
    has_full_text: bool = False

    # === Scores ===
    quality_score: float = 0.0
    relevance_score: float = 0.0
    authority_score: float = 0.0
    impact_score: float = 0.0

    # === Classification ===
    keywords: list[str] = field(default_factory=list)
    mesh_terms: list[str] = field(default_factory=list)
    affiliations: list[str] = field(default_factory=list)
    publication_type: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.citation_count = max(0, int(self.citation_count or 0))
        self.influential_citation_count = max(0, int(self.influential_citation_count or 0))
        self.references_count = max(0, int(self.references_count or 0))

    @property
    def has_abstract(self) -> bool:
        return bool(self.abstract and self.abstract.strip())

    def published_on(self) -> date | None:
        return parse_publication_date(self.publication_date)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "type": self.provider_type.value,
            "title": self.title,
            "authors": list(self.authors),
            "journal": self.journal,
            "publication_date": self.publication_date,
            "doi": self.doi,
            "pmid": self.pmid,
            "url": self.url,
            "abstract": self.abstract,
            "ai_summary": self.ai_summary,
            "citation_count": self.citation_count,
            "is_open_access": self.is_open_access,
            "full_text_url": self.full_text_url,
            "pdf_url": self.pdf_url,
            "license": self.license,
            "scores": {
                "quality": self.quality_score,
                "relevance": self.relevance_score,
                "authority": self.authority_score,
                "impact": self.impact_score,
            },
            "keywords": list(self.keywords),
            "mesh_terms": list(self.mesh_terms),
            "affiliations": list(self.affiliations),
            "publication_type": list(self.publication_type),
        }
