"""Individual scoring components for candidate ranking."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List, Optional

import pendulum

from ..config import KeywordBoost, ScoringConfig, SectionPolicy
from ..ingestion.models import FeedEntry


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def recency(age_hours: float, half_life_hours: float) -> float:
    """Exponential decay: 1.0 at age 0, 0.5 at one half-life.

    Future-dated entries (negative age) count as age 0.
    """
    return clamp(0.5 ** (max(0.0, age_hours) / half_life_hours))


class BaseScorer(ABC):
    """Base class for scoring components."""

    @abstractmethod
    def score(self, entry: FeedEntry, context: Optional[Dict] = None) -> float:
        """
        Score an entry.

        Args:
            entry: Parsed feed entry
            context: Additional context (e.g. ``now``, ``trust``)

        Returns:
            Non-negative score
        """
        pass


class RecencyScorer(BaseScorer):
    """Score based on publication recency with exponential decay."""

    def __init__(self, half_life_hours: float = 24.0) -> None:
        """
        Initialize recency scorer.

        Args:
            half_life_hours: Hours for score to decay by 50%
        """
        self.half_life_hours = half_life_hours

    def score(self, entry: FeedEntry, context: Optional[Dict] = None) -> float:
        now = (context or {}).get("now") or pendulum.now("UTC")
        age_hours = (now - entry.published_at).total_seconds() / 3600
        return recency(age_hours, self.half_life_hours)


class TrustScorer(BaseScorer):
    """Score based on source trust, given in context as 0-1."""

    def score(self, entry: FeedEntry, context: Optional[Dict] = None) -> float:
        trust = (context or {}).get("trust", 0.6)
        return clamp(float(trust))


class QualityScorer(BaseScorer):
    """Length-normalized title/snippet quality with a low-quality marker penalty."""

    TITLE_TARGET = 90
    SNIPPET_TARGET = 280

    def __init__(self, markers: Iterable[str] = (), penalty: float = 0.25) -> None:
        self.markers = [m.lower() for m in markers]
        self.penalty = penalty

    def score(self, entry: FeedEntry, context: Optional[Dict] = None) -> float:
        title_part = min(len(entry.title), self.TITLE_TARGET) / self.TITLE_TARGET
        snippet_part = min(len(entry.snippet), self.SNIPPET_TARGET) / self.SNIPPET_TARGET
        value = 0.6 * title_part + 0.4 * snippet_part

        title = entry.title.lower()
        snippet = entry.snippet.lower()
        if any(m in title or m in snippet for m in self.markers):
            value -= self.penalty

        return clamp(value)


class KeywordScorer(BaseScorer):
    """Sum of per-keyword bonuses found in title + snippet, capped."""

    def __init__(self, boosts: List[KeywordBoost], cap: float = 0.25) -> None:
        self.boosts = [(b.keyword.lower(), b.boost) for b in boosts]
        self.cap = cap

    def score(self, entry: FeedEntry, context: Optional[Dict] = None) -> float:
        text = f"{entry.title} {entry.snippet}".lower()
        total = sum(boost for keyword, boost in self.boosts if keyword in text)
        return clamp(total, 0.0, self.cap)


class CandidateScorer:
    """Combine trust, recency, quality and keyword scores for one section."""

    def __init__(self, config: ScoringConfig, policy: SectionPolicy) -> None:
        """
        Initialize candidate scorer.

        Args:
            config: Scoring weights and quality settings
            policy: Section policy supplying half-life and keyword boosts
        """
        self.config = config
        self.policy = policy
        self.trust_scorer = TrustScorer()
        self.recency_scorer = RecencyScorer(half_life_hours=policy.recency_half_life_hours)
        self.quality_scorer = QualityScorer(
            markers=config.low_quality_markers,
            penalty=config.low_quality_penalty,
        )
        self.keyword_scorer = KeywordScorer(policy.keyword_boosts, cap=config.keyword_boost_cap)

    def components(self, entry: FeedEntry, trust: float, now: Optional[datetime] = None) -> Dict[str, float]:
        """Individual component scores, useful for diagnostics."""
        context = {"now": now or pendulum.now("UTC"), "trust": trust}
        return {
            "trust": self.trust_scorer.score(entry, context),
            "recency": self.recency_scorer.score(entry, context),
            "quality": self.quality_scorer.score(entry, context),
            "keyword": self.keyword_scorer.score(entry, context),
        }

    def score(self, entry: FeedEntry, trust: float, now: Optional[datetime] = None) -> float:
        """Composite score in [0, 1].

        Args:
            entry: Parsed entry
            trust: Source trust as 0-1
            now: Reference time for recency
        """
        parts = self.components(entry, trust, now)
        total = (
            self.config.trust_weight * parts["trust"]
            + self.config.recency_weight * parts["recency"]
            + self.config.quality_weight * parts["quality"]
            + self.config.keyword_weight * parts["keyword"]
        )
        return clamp(total)
