"""
Runtime settings for Multi-Source Search.

Settings are read from environment variables (``SearchSettings.from_env()``)
and handed to the DI container as a plain dict (``to_container_config()``).

Environment:
    NCBI_EMAIL, NCBI_API_KEY          PubMed / Entrez identification
    CROSSREF_EMAIL                    Crossref polite pool
    S2_API_KEY                        Semantic Scholar (optional, higher limits)
    WEB_SEARCH_API_KEY                Web search JSON API key
    WEB_SEARCH_ENGINE_ID              Web search engine id (cx)
    WEB_SEARCH_URL                    Web search endpoint override
    MSS_PROVIDER_TIMEOUT              Per-provider timeout, seconds (10)
    MSS_OVERALL_TIMEOUT               Whole fan-out timeout, seconds (30)
    MSS_CACHE_TTL                     Provider cache TTL, seconds (86400)
    MSS_CACHE_MAX_SIZE                Entries per provider cache (500)
    MSS_TITLE_KEY_LENGTH              Title dedup key length (50)
    MSS_QUERY_FOCUS                   "ophthalmology" (default) or "none"
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any

from multisource_search.core.exceptions import ConfigurationError

DEFAULT_EMAIL = "multisource-search@example.com"
DEFAULT_WEB_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"


@dataclass(frozen=True)
class QueryFocus:
    """
    Domain filter added to provider queries.

    When a query mentions none of ``trigger_terms``, adapters append the
    focus terms in their own syntax (``primary_term`` for PubMed, an OR
    group of ``filter_terms`` elsewhere).
    """

    name: str
    primary_term: str = ""
    trigger_terms: tuple[str, ...] = ()
    filter_terms: tuple[str, ...] = ()

    def applies_to(self, query: str) -> bool:
        if not self.primary_term:
            return False
        lowered = query.lower()
        return not any(term in lowered for term in self.trigger_terms)

    @classmethod
    def ophthalmology(cls) -> QueryFocus:
        return cls(
            name="ophthalmology",
            primary_term="ophthalmology",
            trigger_terms=("ophthalmol", "eye", "retina", "ocular"),
            filter_terms=("ophthalmology", "eye", "retina", "ocular", "visual"),
        )

    @classmethod
    def none(cls) -> QueryFocus:
        return cls(name="none")

    @classmethod
    def from_name(cls, name: str) -> QueryFocus:
        normalized = (name or "none").strip().lower()
        if normalized == "ophthalmology":
            return cls.ophthalmology()
        if normalized in ("none", ""):
            return cls.none()
        raise ConfigurationError(
            f"Unknown query focus: {name!r} (expected 'ophthalmology' or 'none')"
        )


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


@dataclass
class SearchSettings:
    """All tunables of the search engine."""

    ncbi_email: str = DEFAULT_EMAIL
    ncbi_api_key: str | None = None
    crossref_email: str | None = None
    s2_api_key: str | None = None
    web_search_api_key: str | None = None
    web_search_engine_id: str | None = None
    web_search_url: str = DEFAULT_WEB_SEARCH_URL
    provider_timeout: float = 10.0
    overall_timeout: float = 30.0
    cache_ttl: float = 24 * 60 * 60
    cache_max_size: int = 500
    title_key_length: int = 50
    query_focus: QueryFocus = field(default_factory=QueryFocus.ophthalmology)

    @classmethod
    def from_env(cls) -> SearchSettings:
        """Build settings from environment variables."""
        return cls(
            ncbi_email=os.environ.get("NCBI_EMAIL", DEFAULT_EMAIL),
            ncbi_api_key=os.environ.get("NCBI_API_KEY") or None,
            crossref_email=os.environ.get("CROSSREF_EMAIL") or None,
            s2_api_key=os.environ.get("S2_API_KEY") or None,
            web_search_api_key=os.environ.get("WEB_SEARCH_API_KEY") or None,
            web_search_engine_id=os.environ.get("WEB_SEARCH_ENGINE_ID") or None,
            web_search_url=os.environ.get("WEB_SEARCH_URL", DEFAULT_WEB_SEARCH_URL),
            provider_timeout=_env_float("MSS_PROVIDER_TIMEOUT", 10.0),
            overall_timeout=_env_float("MSS_OVERALL_TIMEOUT", 30.0),
            cache_ttl=_env_float("MSS_CACHE_TTL", 24 * 60 * 60),
            cache_max_size=_env_int("MSS_CACHE_MAX_SIZE", 500),
            title_key_length=_env_int("MSS_TITLE_KEY_LENGTH", 50),
            query_focus=QueryFocus.from_name(os.environ.get("MSS_QUERY_FOCUS", "ophthalmology")),
        )

    def to_container_config(self) -> dict[str, Any]:
        """Flatten into the dict shape ``ApplicationContainer.config`` expects."""
        return {
            "ncbi_email": self.ncbi_email,
            "ncbi_api_key": self.ncbi_api_key,
            "crossref_email": self.crossref_email,
            "s2_api_key": self.s2_api_key,
            "web_search_api_key": self.web_search_api_key,
            "web_search_engine_id": self.web_search_engine_id,
            "web_search_url": self.web_search_url,
            "provider_timeout": self.provider_timeout,
            "overall_timeout": self.overall_timeout,
            "cache_ttl": self.cache_ttl,
            "cache_max_size": self.cache_max_size,
            "title_key_length": self.title_key_length,
            "query_focus": self.query_focus,
        }


def configure_logging(level: int = logging.INFO) -> None:
    """Install the standard log format for applications embedding the engine."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
