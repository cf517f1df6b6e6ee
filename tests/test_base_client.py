"""Tests for BaseAPIClient: retry, status mapping and parsing."""

from __future__ import annotations

import json

import httpx
import pytest

from multisource_search.core.async_utils import CircuitBreaker
from multisource_search.core.exceptions import (
    NetworkError,
    ParseError,
    RateLimitError,
    ServiceUnavailableError,
)
from multisource_search.infrastructure.sources.base_client import _CONTINUE, BaseAPIClient


def make_client(handler, client_cls=BaseAPIClient, **kwargs) -> BaseAPIClient:
    kwargs.setdefault("min_interval", 0.0)
    kwargs.setdefault("backoff_base", 0.0)
    return client_cls(
        base_url="https://api.test",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class Recorder:
    """Handler that replays canned responses and records requests."""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


# ============================================================
# Success Paths
# ============================================================


class TestSuccess:
    @pytest.mark.asyncio
    async def test_get_json(self):
        handler = Recorder(httpx.Response(200, json={"items": [1, 2]}))
        async with make_client(handler) as client:
            data = await client._make_request("/search", params={"q": "amd", "rows": 5})

        assert data == {"items": [1, 2]}
        request = handler.requests[0]
        assert request.url.path == "/search"
        assert request.url.params["q"] == "amd"
        assert request.url.params["rows"] == "5"

    @pytest.mark.asyncio
    async def test_full_url_bypasses_base(self):
        handler = Recorder(httpx.Response(200, json={}))
        async with make_client(handler) as client:
            await client._make_request("https://other.test/v1")
        assert handler.requests[0].url.host == "other.test"

    @pytest.mark.asyncio
    async def test_text_response(self):
        handler = Recorder(httpx.Response(200, text="<xml/>"))
        async with make_client(handler) as client:
            assert await client._make_request("/raw", expect_json=False) == "<xml/>"

    @pytest.mark.asyncio
    async def test_post_sends_json_body(self):
        handler = Recorder(httpx.Response(200, json={"ok": True}))
        async with make_client(handler) as client:
            await client._make_request("/batch", method="POST", data={"ids": ["a"]})
        request = handler.requests[0]
        assert request.method == "POST"
        assert json.loads(request.content) == {"ids": ["a"]}


# ============================================================
# Error Mapping
# ============================================================


class TestErrors:
    @pytest.mark.asyncio
    async def test_rate_limit_retried_then_succeeds(self):
        handler = Recorder(
            httpx.Response(429, headers={"Retry-After": "0"}),
            httpx.Response(200, json={"ok": True}),
        )
        async with make_client(handler) as client:
            assert await client._make_request("/search") == {"ok": True}
        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_rate_limit_exhausted(self):
        handler = Recorder(httpx.Response(429, headers={"Retry-After": "0"}))
        async with make_client(handler) as client:
            with pytest.raises(RateLimitError) as exc_info:
                await client._make_request("/search")
        assert len(handler.requests) == BaseAPIClient._MAX_RETRIES + 1
        assert exc_info.value.context.status_code == 429

    @pytest.mark.asyncio
    async def test_server_error(self):
        handler = Recorder(httpx.Response(503))
        async with make_client(handler) as client:
            with pytest.raises(ServiceUnavailableError) as exc_info:
                await client._make_request("/search")
        assert exc_info.value.context.status_code == 503
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_client_error(self):
        handler = Recorder(httpx.Response(404))
        async with make_client(handler) as client:
            with pytest.raises(NetworkError) as exc_info:
                await client._make_request("/missing")
        assert exc_info.value.context.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        handler = Recorder(httpx.Response(200, text="not json"))
        async with make_client(handler) as client:
            with pytest.raises(ParseError):
                await client._make_request("/search")

    @pytest.mark.asyncio
    async def test_transport_error_retried_then_raised(self):
        calls = 0

        def handler(request):
            nonlocal calls
            calls += 1
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(NetworkError):
                await client._make_request("/search")
        assert calls == BaseAPIClient._MAX_RETRIES + 1

    @pytest.mark.asyncio
    async def test_open_circuit_rejects(self):
        handler = Recorder(httpx.Response(500))
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=60.0)
        async with make_client(handler, circuit_breaker=breaker) as client:
            with pytest.raises(ServiceUnavailableError):
                await client._make_request("/search")
            with pytest.raises(RateLimitError):
                await client._make_request("/search")
        assert len(handler.requests) == 1


# ============================================================
# Subclass Hooks
# ============================================================


class NotFoundIsEmptyClient(BaseAPIClient):
    _service_name = "Hooked"

    def _handle_expected_status(self, response, url):
        if response.status_code == 404:
            return []
        return _CONTINUE


class TestHooks:
    @pytest.mark.asyncio
    async def test_expected_status_short_circuits(self):
        handler = Recorder(httpx.Response(404))
        async with make_client(handler, client_cls=NotFoundIsEmptyClient) as client:
            assert await client._make_request("/lookup") == []
