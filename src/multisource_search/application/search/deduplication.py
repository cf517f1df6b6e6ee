"""
Deduplicator - Cross-Provider Duplicate Removal

Each record yields up to three keys:
    doi:<lowercased DOI>, pmid:<PMID>, title:<normalized title prefix>

Records are visited in provider-priority order; the first record to claim
any of its keys is kept, and every later record sharing at least one key is
dropped. Earlier-listed providers therefore win.

Known limitation: records without DOI and PMID depend on the title key
alone. A short prefix can over-merge different works that open with the
same words, and differently formatted titles of the same work can slip
through. The prefix length is configurable for that reason.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from multisource_search.domain.entities import ProviderType, UnifiedSource

logger = logging.getLogger(__name__)

DEFAULT_TITLE_KEY_LENGTH = 50


def normalize_title(title: str | None, length: int = DEFAULT_TITLE_KEY_LENGTH) -> str:
    """Lowercase, replace punctuation with spaces, collapse whitespace, keep first ``length`` chars."""
    if not title:
        return ""
    text = re.sub(r"[^\w\s]", " ", title.lower())
    text = re.sub(r"\s+", " ", text).strip()
    return text[:length]


def normalize_doi(doi: str | None) -> str:
    """Normalize DOI for comparison."""
    if not doi:
        return ""
    doi = doi.lower().strip()
    for prefix in ("https://doi.org/", "http://doi.org/", "https://dx.doi.org/", "doi:"):
        doi = doi.removeprefix(prefix)
    return doi.strip()


@dataclass
class DeduplicationStats:
    """Statistics from the deduplication pass."""

    total_input: int = 0
    unique_sources: int = 0
    dedup_by_doi: int = 0
    dedup_by_pmid: int = 0
    dedup_by_title: int = 0

    @property
    def duplicates_removed(self) -> int:
        return self.dedup_by_doi + self.dedup_by_pmid + self.dedup_by_title

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_input": self.total_input,
            "unique_sources": self.unique_sources,
            "duplicates_removed": self.duplicates_removed,
            "dedup_by_doi": self.dedup_by_doi,
            "dedup_by_pmid": self.dedup_by_pmid,
            "dedup_by_title": self.dedup_by_title,
        }


class Deduplicator:
    """
    First-claim-wins deduplication over DOI, PMID and title keys.

    Example:
        dedup = Deduplicator(title_key_length=50)
        kept, stats = dedup.deduplicate(sources, priority=[ProviderType.PUBMED, ...])
    """

    def __init__(self, title_key_length: int = DEFAULT_TITLE_KEY_LENGTH):
        if title_key_length <= 0:
            raise ValueError("title_key_length must be positive")
        self.title_key_length = title_key_length

    def keys_for(self, source: UnifiedSource) -> list[tuple[str, str]]:
        """Dedup keys of one record as (kind, value) pairs; empty values are skipped."""
        keys = []
        doi = normalize_doi(source.doi)
        if doi:
            keys.append(("doi", doi))
        pmid = (source.pmid or "").strip()
        if pmid:
            keys.append(("pmid", pmid))
        title = normalize_title(source.title, self.title_key_length)
        if title:
            keys.append(("title", title))
        return keys

    def deduplicate(
        self,
        sources: Sequence[UnifiedSource],
        priority: Sequence[ProviderType] | None = None,
    ) -> tuple[list[UnifiedSource], DeduplicationStats]:
        """
        Drop records that share any key with an earlier record.

        Args:
            sources: Records to deduplicate
            priority: Provider order; records are stably re-ordered by it
                      before the scan (unlisted providers go last)

        Returns:
            (kept records in scan order, statistics)
        """
        stats = DeduplicationStats(total_input=len(sources))
        ordered = list(sources)
        if priority:
            rank = {provider: index for index, provider in enumerate(priority)}
            ordered.sort(key=lambda s: rank.get(s.provider_type, len(rank)))

        seen: set[tuple[str, str]] = set()
        kept: list[UnifiedSource] = []
        for source in ordered:
            keys = self.keys_for(source)
            matched = next((kind for kind, value in keys if (kind, value) in seen), None)
            if matched is not None:
                setattr(stats, f"dedup_by_{matched}", getattr(stats, f"dedup_by_{matched}") + 1)
                logger.debug(f"Duplicate dropped ({matched}): {source.id}")
                continue
            seen.update(keys)
            kept.append(source)

        stats.unique_sources = len(kept)
        if stats.duplicates_removed:
            logger.info(
                f"Deduplication: {stats.total_input} -> {stats.unique_sources} "
                f"(doi={stats.dedup_by_doi}, pmid={stats.dedup_by_pmid}, title={stats.dedup_by_title})"
            )
        return kept, stats
