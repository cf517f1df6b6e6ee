"""
Base API Client - Common HTTP request pattern with retry, rate limiting, and circuit breaker.

Shared by every JSON provider client (Europe PMC, Crossref, Semantic Scholar,
web search):
- Automatic retry on 429 (rate limit) with Retry-After support
- Retry on transport errors with exponential backoff
- Rate limiting (configurable interval between requests)
- Circuit breaker for fault tolerance
- Typed errors instead of silent None: callers decide what a failure means
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx
from typing_extensions import Self

from multisource_search.core.async_utils import CircuitBreaker
from multisource_search.core.exceptions import (
    ErrorContext,
    NetworkError,
    ParseError,
    RateLimitError,
    ServiceUnavailableError,
)

logger = logging.getLogger(__name__)


class BaseAPIClient:
    """
    Base class for external API clients.

    Provides common infrastructure:
    - httpx.AsyncClient management
    - Rate limiting with configurable interval
    - Retry on 429 and transport errors with exponential backoff
    - Circuit breaker for fault tolerance
    - Mapping of HTTP failures onto the exception hierarchy

    Subclasses should set `_service_name` and can override:
    - `_execute_request()`: Custom request execution
    - `_handle_expected_status()`: Handle service-specific status codes
    - `_parse_response()`: Custom response processing

    Example:
        class MyClient(BaseAPIClient):
            _service_name = "MyAPI"

            def __init__(self):
                super().__init__(base_url="https://api.example.com", min_interval=0.1)

            async def search(self, query: str) -> dict:
                return await self._make_request("/search", params={"q": query})
    """

    _service_name: str = "API"
    _MAX_RETRIES: int = 2

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 10.0,
        min_interval: float = 0.1,
        headers: dict[str, str] | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        backoff_base: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize base client.

        Args:
            base_url: Base URL for the API (optional, can pass full URLs)
            timeout: Request timeout in seconds
            min_interval: Minimum seconds between requests (rate limiting)
            headers: Default headers for all requests
            circuit_breaker: Optional circuit breaker for fault tolerance.
                             If None, a default one is created (threshold=10, recovery=60s).
            backoff_base: Base delay for retry backoff (0 disables sleeping)
            transport: Optional httpx transport (e.g. httpx.MockTransport in tests)
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._min_interval = min_interval
        self._backoff_base = backoff_base
        self._last_request_time = 0.0
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            headers=headers or {},
            limits=httpx.Limits(
                max_connections=20,
                max_keepalive_connections=10,
                keepalive_expiry=30.0,
            ),
            transport=transport,
        )
        self._circuit_breaker = circuit_breaker or CircuitBreaker(failure_threshold=10, recovery_timeout=60.0)

    async def _rate_limit(self) -> None:
        """Enforce minimum interval between requests."""
        elapsed = time.monotonic() - self._last_request_time
        if elapsed < self._min_interval:
            await asyncio.sleep(self._min_interval - elapsed)
        self._last_request_time = time.monotonic()

    def _build_url(self, url: str) -> str:
        """Build full URL from path or full URL."""
        if url.startswith(("http://", "https://")):
            return url
        return f"{self._base_url}{url}"

    def _context(self, url: str, status_code: int | None = None) -> ErrorContext:
        return ErrorContext(provider=self._service_name, operation=url, status_code=status_code)

    async def _make_request(
        self,
        url: str,
        *,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        expect_json: bool = True,
    ) -> Any:
        """
        Make HTTP request with retry and circuit breaker protection.

        Args:
            url: Full URL or path (appended to base_url)
            method: HTTP method (GET or POST)
            params: Query-string parameters
            data: JSON body for POST requests
            headers: Additional headers for this request
            expect_json: If True, parse response as JSON; otherwise return text

        Returns:
            Parsed JSON payload or response text

        Raises:
            RateLimitError: 429 persisted after retries, or circuit breaker open
            ServiceUnavailableError: 5xx response
            NetworkError: Other non-2xx response or transport failure
            ParseError: Body is not valid JSON
        """
        full_url = self._build_url(url)

        for attempt in range(self._MAX_RETRIES + 1):
            await self._rate_limit()
            try:
                async with self._circuit_breaker:
                    response = await self._execute_request(
                        full_url, method=method, params=params, data=data, headers=headers
                    )

                    expected = self._handle_expected_status(response, full_url)
                    if expected is not _CONTINUE:
                        return expected

                    if response.status_code == 429:
                        if attempt < self._MAX_RETRIES:
                            retry_after = self._get_retry_after(response, attempt)
                            logger.warning(
                                f"{self._service_name}: Rate limited (429), "
                                f"retry {attempt + 1}/{self._MAX_RETRIES} in {retry_after:.1f}s"
                            )
                            await asyncio.sleep(retry_after)
                            continue
                        raise RateLimitError(
                            f"{self._service_name}: rate limit exceeded after retries",
                            retry_after=self._get_retry_after(response, attempt),
                            context=self._context(full_url, 429),
                        )

                    if response.status_code >= 500:
                        raise ServiceUnavailableError(
                            f"HTTP {response.status_code} {response.reason_phrase}",
                            service=self._service_name,
                            context=self._context(full_url, response.status_code),
                        )

                    if not response.is_success:
                        raise NetworkError(
                            f"{self._service_name} HTTP error {response.status_code}: "
                            f"{response.reason_phrase}",
                            context=self._context(full_url, response.status_code),
                        )

                    return self._parse_response(response, expect_json)

            except httpx.RequestError as e:
                if attempt < self._MAX_RETRIES:
                    logger.warning(f"{self._service_name} request error (attempt {attempt + 1}): {e}")
                    await asyncio.sleep(self._backoff_base * 2**attempt)
                    continue
                raise NetworkError(
                    f"{self._service_name} request failed: {e}",
                    context=self._context(full_url),
                ) from e

        raise NetworkError(f"{self._service_name} request failed", context=self._context(full_url))

    async def _execute_request(
        self,
        url: str,
        *,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Execute the actual HTTP request. Override for custom behavior."""
        if method == "POST" and data:
            return await self._client.post(url, params=params, json=data, headers=headers or {})
        return await self._client.get(url, params=params, headers=headers or {})

    def _handle_expected_status(self, response: httpx.Response, url: str) -> Any:
        """
        Handle expected non-200 status codes that shouldn't be treated as failures.

        Override in subclasses for service-specific behavior.
        Return a value to short-circuit (e.g., an empty payload for 404).
        Return the sentinel _CONTINUE to continue normal processing.

        Default: no special handling.
        """
        return _CONTINUE

    def _parse_response(self, response: httpx.Response, expect_json: bool) -> Any:
        """Parse response body. Override for custom extraction logic."""
        if not expect_json:
            return response.text
        try:
            return response.json()
        except ValueError as e:
            raise ParseError(
                f"invalid JSON body ({e})",
                source=self._service_name,
                context=self._context(str(response.request.url), response.status_code),
            ) from e

    def _get_retry_after(self, response: httpx.Response, attempt: int) -> float:
        """Extract Retry-After from response headers, with exponential backoff fallback."""
        fallback = self._backoff_base * 2**attempt
        try:
            return float(response.headers.get("Retry-After", fallback))
        except (ValueError, TypeError):
            return fallback

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()


# Sentinel object to indicate "continue normal processing" from _handle_expected_status
_CONTINUE = object()
