"""
Provider Adapters

One adapter per upstream bibliographic API, all behind the SearchProvider
contract:

    ┌───────────────────────────────────────────────────────────┐
    │                    SearchOrchestrator                     │
    └───────────────────────────┬───────────────────────────────┘
                                │ ProviderRegistry (priority order)
    ┌──────────┬───────────┬────▼─────────┬──────────┬──────────┐
    │  PubMed  │ EuropePMC │ Sem.Scholar  │ Crossref │   Web    │
    │ (Entrez) │  (REST)   │   (Graph)    │ (/works) │ (JSON)   │
    └──────────┴───────────┴──────────────┴──────────┴──────────┘
         each: resolve_params -> ProviderCache -> _fetch -> score
"""

from .base import SearchProvider
from .base_client import BaseAPIClient
from .crossref import CrossRefClient, CrossrefProvider
from .europe_pmc import EuropePMCClient, EuropePMCProvider
from .pubmed import EntrezClient, PubMedProvider
from .registry import ProviderRegistry
from .semantic_scholar import SemanticScholarClient, SemanticScholarProvider
from .web_search import WebSearchClient, WebSearchProvider

__all__ = [
    "SearchProvider",
    "BaseAPIClient",
    "ProviderRegistry",
    "EntrezClient",
    "PubMedProvider",
    "EuropePMCClient",
    "EuropePMCProvider",
    "CrossRefClient",
    "CrossrefProvider",
    "SemanticScholarClient",
    "SemanticScholarProvider",
    "WebSearchClient",
    "WebSearchProvider",
]
