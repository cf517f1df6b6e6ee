"""Tests for the generic web search client and provider."""

from __future__ import annotations

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from multisource_search.config import QueryFocus
from multisource_search.core.exceptions import ConfigurationError
from multisource_search.domain.entities import ProviderType
from multisource_search.infrastructure.sources.web_search import (
    WebSearchClient,
    WebSearchProvider,
    is_open_access_url,
)

SEARCH_URL = "https://search.test/v1"


def web_item(**overrides):
    item = {
        "title": "Anti-VEGF treatment guideline",
        "link": "https://www.aao.org/preferred-practice-pattern/amd",
        "displayLink": "www.aao.org",
        "snippet": "Recommendations for neovascular AMD.",
        "pagemap": {
            "metatags": [
                {
                    "citation_author": "AAO Retina Panel",
                    "citation_publication_date": "2022/10/01",
                    "citation_doi": "10.1016/j.ophtha.2022.10.001",
                    "citation_journal_title": "Ophthalmology",
                }
            ]
        },
    }
    item.update(overrides)
    return item


@pytest.fixture
def client():
    mock = MagicMock(spec=WebSearchClient)
    mock.search = AsyncMock(return_value=[web_item()])
    return mock


@pytest.fixture
def provider(client):
    return WebSearchProvider(client, query_focus=QueryFocus.ophthalmology())


# ============================================================
# Query Translation
# ============================================================


class TestResolveParams:
    def test_focus_term_and_cap(self, provider):
        assert provider.resolve_params("anti-VEGF", 25) == {"q": "anti-VEGF ophthalmology", "num": 10}

    def test_no_focus_for_eye_queries(self, provider):
        assert provider.resolve_params("eye strain", 3) == {"q": "eye strain", "num": 3}


# ============================================================
# Normalization
# ============================================================


class TestNormalization:
    @pytest.mark.asyncio
    async def test_maps_item(self, provider):
        [source] = await provider.search("eye", 5)

        assert source.id == "web_search_0"
        assert source.provider_type is ProviderType.WEB_SEARCH
        assert source.authors == ["AAO Retina Panel"]
        assert source.journal == "Ophthalmology"
        assert source.publication_date == "2022-10-01"
        assert source.doi == "10.1016/j.ophtha.2022.10.001"
        assert source.abstract == "Recommendations for neovascular AMD."
        assert source.publication_type == ["web"]

    @pytest.mark.asyncio
    async def test_bare_item_defaults(self, provider, client):
        client.search.return_value = [
            {"title": "Cochrane review", "link": "https://www.cochrane.org/CD005139", "displayLink": "www.cochrane.org"}
        ]
        [source] = await provider.search("eye", 5)
        assert source.publication_date == date.today().isoformat()
        assert source.journal == "www.cochrane.org"
        assert source.authors == []
        assert source.is_open_access is True

    @pytest.mark.asyncio
    async def test_items_without_link_skipped_ids_by_position(self, provider, client):
        client.search.return_value = [web_item(link=""), web_item(), web_item(title="")]
        sources = await provider.search("eye", 5)
        assert [s.id for s in sources] == ["web_search_1"]

    @pytest.mark.asyncio
    async def test_malformed_item_skipped_rest_kept(self, provider, client):
        client.search.return_value = [web_item(), "garbage-item", web_item(title=42)]
        sources = await provider.search("eye", 5)
        assert [s.id for s in sources] == ["web_search_0"]

    @pytest.mark.asyncio
    async def test_non_string_metatags(self, provider, client):
        client.search.return_value = [
            web_item(pagemap={"metatags": [{"citation_date": 2021, "citation_author": None}]})
        ]
        [source] = await provider.search("eye", 5)
        assert source.publication_date == "2021-01-01"
        assert source.authors == []

    @pytest.mark.asyncio
    async def test_unconfigured_client_yields_empty(self):
        provider = WebSearchProvider(WebSearchClient(), query_focus=QueryFocus.none())
        assert await provider.search("amd", 5) == []


class TestOpenAccessDomains:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://www.ncbi.nlm.nih.gov/pmc/articles/PMC1/", True),
            ("https://journals.plos.org/plosone/article?id=1", True),
            ("https://www.nejm.org/doi/full/10.1056/x", False),
        ],
    )
    def test_domains(self, url, expected):
        assert is_open_access_url(url) is expected


# ============================================================
# HTTP Client
# ============================================================


class TestWebSearchClient:
    @pytest.mark.asyncio
    async def test_requires_configuration(self):
        async with WebSearchClient(api_key="key") as client:
            assert not client.is_configured
            with pytest.raises(ConfigurationError):
                await client.search({"q": "amd"})

    @pytest.mark.asyncio
    async def test_sends_key_and_engine(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"items": [web_item()]})

        client = WebSearchClient(
            api_key="key",
            engine_id="cx-1",
            url=SEARCH_URL,
            transport=httpx.MockTransport(handler),
        )
        async with client:
            items = await client.search({"q": "amd", "num": 5})

        assert len(items) == 1
        params = seen[0].url.params
        assert params["key"] == "key"
        assert params["cx"] == "cx-1"
        assert params["q"] == "amd"
        assert str(seen[0].url).startswith(SEARCH_URL)

    @pytest.mark.asyncio
    async def test_no_items_means_no_hits(self):
        client = WebSearchClient(
            api_key="key",
            engine_id="cx-1",
            url=SEARCH_URL,
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, json={"searchInformation": {"totalResults": "0"}})
            ),
        )
        async with client:
            assert await client.search({"q": "zzz"}) == []
