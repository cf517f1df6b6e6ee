"""
Quality Scorer - Per-Provider Scoring Policies

Every record gets four scores:
- quality:   provider base score + additive bonus rules, clamped to [0, 100]
- relevance: share of query terms found in title + abstract, x100
- authority: static per-provider baseline (web results: by domain)
- impact:    citation count (Semantic Scholar: influential citations x 2)

Architecture Decision:
    Heuristics live in one data table (SCORING_POLICIES) instead of being
    spread across the adapters, so tuning a weight means editing one row
    and every rule can be tested in isolation.

    The Semantic Scholar impact weighting (influential x 2 instead of the
    total citation count) is kept exactly as the original ranking behaved.
    It is not normalized against the other providers.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from multisource_search.domain.entities import ProviderType, UnifiedSource

logger = logging.getLogger(__name__)

SCORE_MIN = 0.0
SCORE_MAX = 100.0


def clamp(value: float, low: float = SCORE_MIN, high: float = SCORE_MAX) -> float:
    return max(low, min(high, value))


# =============================================================================
# Policy Building Blocks
# =============================================================================


@dataclass(frozen=True)
class BonusRule:
    """Add ``points`` to the quality score when ``applies(source)`` is true."""

    name: str
    points: float
    applies: Callable[[UnifiedSource], bool]


@dataclass(frozen=True)
class DomainRule:
    """Score adjustment for URLs containing ``domain``."""

    domain: str
    points: float

    def matches(self, url: str) -> bool:
        return self.domain in url.lower()


def citation_impact(source: UnifiedSource) -> float:
    return float(source.citation_count)


def influential_citation_impact(source: UnifiedSource) -> float:
    return float(source.influential_citation_count * 2)


@dataclass(frozen=True)
class ScoringPolicy:
    """
    Scoring rules for one provider type.

    For web results, ``authority_domains`` (first match wins) add to quality
    and lift authority to ``authority_domain_score``; every matching
    ``penalty_domains`` entry subtracts from quality.
    """

    base: float
    authority: float
    bonuses: tuple[BonusRule, ...] = ()
    impact: Callable[[UnifiedSource], float] = citation_impact
    authority_domains: tuple[DomainRule, ...] = ()
    penalty_domains: tuple[DomainRule, ...] = ()
    authority_domain_score: float = 85.0

    def quality(self, source: UnifiedSource) -> float:
        score = self.base
        for rule in self.bonuses:
            if rule.applies(source):
                score += rule.points
        domain_rule = self._authority_match(source.url)
        if domain_rule is not None:
            score += domain_rule.points
        for penalty in self.penalty_domains:
            if penalty.matches(source.url):
                score += penalty.points
        return clamp(score)

    def authority_score(self, source: UnifiedSource) -> float:
        if self.authority_domains and self._authority_match(source.url) is not None:
            return clamp(self.authority_domain_score)
        return clamp(self.authority)

    def _authority_match(self, url: str) -> DomainRule | None:
        for rule in self.authority_domains:
            if rule.matches(url):
                return rule
        return None


# =============================================================================
# Policy Table
# =============================================================================

WEB_AUTHORITY_DOMAINS: tuple[DomainRule, ...] = (
    DomainRule("pubmed.ncbi.nlm.nih.gov", 25),
    DomainRule("cochrane.org", 30),
    DomainRule("cochranelibrary.com", 30),
    DomainRule("uptodate.com", 30),
    DomainRule("aao.org", 25),
    DomainRule("nejm.org", 20),
    DomainRule("jamanetwork.com", 20),
    DomainRule("esrs.org", 20),
    DomainRule("thelancet.com", 20),
    DomainRule("nature.com", 20),
)

WEB_PENALTY_DOMAINS: tuple[DomainRule, ...] = (
    DomainRule("wikipedia.org", -10),
    DomainRule("webmd.com", -10),
)

SCORING_POLICIES: dict[ProviderType, ScoringPolicy] = {
    ProviderType.PUBMED: ScoringPolicy(
        base=70,
        authority=85,
        bonuses=(
            BonusRule("abstract", 15, lambda s: s.has_abstract),
            BonusRule("mesh_terms>=3", 10, lambda s: len(s.mesh_terms) >= 3),
            BonusRule("doi", 5, lambda s: bool(s.doi)),
        ),
    ),
    ProviderType.EUROPE_PMC: ScoringPolicy(
        base=75,
        authority=80,
        bonuses=(
            BonusRule("abstract", 10, lambda s: s.has_abstract),
            BonusRule("open_access", 10, lambda s: s.is_open_access),
            BonusRule("full_text", 5, lambda s: s.has_full_text),
        ),
    ),
    ProviderType.CROSSREF: ScoringPolicy(
        base=65,
        authority=75,
        bonuses=(
            BonusRule("citations>10", 15, lambda s: s.citation_count > 10),
            BonusRule("open_access", 10, lambda s: s.is_open_access),
            BonusRule("license", 5, lambda s: bool(s.license)),
            BonusRule("references>20", 5, lambda s: s.references_count > 20),
        ),
    ),
    ProviderType.SEMANTIC_SCHOLAR: ScoringPolicy(
        base=70,
        authority=70,
        bonuses=(
            BonusRule("abstract", 10, lambda s: s.has_abstract),
            BonusRule("ai_summary", 5, lambda s: bool(s.ai_summary)),
            BonusRule("influential>5", 10, lambda s: s.influential_citation_count > 5),
            BonusRule("open_access", 5, lambda s: s.is_open_access),
        ),
        impact=influential_citation_impact,
    ),
    ProviderType.WEB_SEARCH: ScoringPolicy(
        base=30,
        authority=40,
        authority_domains=WEB_AUTHORITY_DOMAINS,
        penalty_domains=WEB_PENALTY_DOMAINS,
    ),
}


# =============================================================================
# Scorer
# =============================================================================


def relevance_score(source: UnifiedSource, query: str) -> float:
    """Percentage of whitespace-separated query terms found in title + abstract."""
    terms = query.lower().split()
    if not terms:
        return 0.0
    text = f"{source.title} {source.abstract or ''}".lower()
    found = sum(1 for term in terms if term in text)
    return clamp(found / len(terms) * 100)


@dataclass
class QualityScorer:
    """
    Annotates records in place with quality/relevance/authority/impact.

    Example:
        scorer = QualityScorer()
        scorer.score_all(sources, query="macular degeneration")
    """

    policies: dict[ProviderType, ScoringPolicy] = field(
        default_factory=lambda: dict(SCORING_POLICIES)
    )

    def score(self, source: UnifiedSource, query: str) -> UnifiedSource:
        policy = self.policies.get(source.provider_type)
        if policy is None:
            logger.warning(f"No scoring policy for {source.provider_type.value}, only relevance is scored")
            source.relevance_score = relevance_score(source, query)
            return source

        source.quality_score = policy.quality(source)
        source.relevance_score = relevance_score(source, query)
        source.authority_score = policy.authority_score(source)
        source.impact_score = max(0.0, policy.impact(source))
        return source

    def score_all(self, sources: Iterable[UnifiedSource], query: str) -> None:
        for source in sources:
            self.score(source, query)
