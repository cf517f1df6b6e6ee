"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from multisource_search.config import QueryFocus
from multisource_search.domain.entities import ProviderType, UnifiedSource
from multisource_search.infrastructure.sources.base import SearchProvider

# ============================================================
# Record Factory
# ============================================================


def build_source(
    provider_type: ProviderType = ProviderType.PUBMED,
    index: int = 0,
    **overrides: Any,
) -> UnifiedSource:
    """Build a UnifiedSource with sensible, unique defaults."""
    fields: dict[str, Any] = {
        "id": f"{provider_type.value}_{index}",
        "provider_type": provider_type,
        "title": f"{provider_type.value} study number {index} on retinal imaging",
        "publication_date": "2023-06-15",
        "url": f"https://example.org/{provider_type.value}/{index}",
    }
    fields.update(overrides)
    return UnifiedSource(**fields)


@pytest.fixture
def make_source():
    """Factory fixture for UnifiedSource records."""
    return build_source


# ============================================================
# Fake Provider
# ============================================================


class FakeProvider(SearchProvider):
    """In-memory provider: returns canned records, an error, or sleeps."""

    strategy = "Fake provider search"

    def __init__(
        self,
        provider_type: ProviderType,
        records: list[UnifiedSource] | None = None,
        *,
        error: BaseException | None = None,
        delay: float = 0.0,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("query_focus", QueryFocus.none())
        super().__init__(**kwargs)
        self.provider_type = provider_type
        self.records = records or []
        self.error = error
        self.delay = delay
        self.calls = 0
        self.closed = False

    def resolve_params(
        self,
        query: str,
        limit: int,
        *,
        include_abstracts: bool = True,
        only_open_access: bool = False,
    ) -> dict[str, Any]:
        return {"q": query, "limit": limit, "oa": only_open_access}

    async def _fetch(self, params: dict[str, Any]) -> list[UnifiedSource]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.records[: params["limit"]])

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_provider():
    """Factory fixture for FakeProvider instances."""
    return FakeProvider
