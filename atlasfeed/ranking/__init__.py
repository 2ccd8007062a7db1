"""Candidate scoring and topic extraction."""

from .scorers import (
    BaseScorer,
    CandidateScorer,
    KeywordScorer,
    QualityScorer,
    RecencyScorer,
    TrustScorer,
    recency,
)
from .topics import CATEGORY_RULES, extract_topics

__all__ = [
    "BaseScorer",
    "CATEGORY_RULES",
    "CandidateScorer",
    "KeywordScorer",
    "QualityScorer",
    "RecencyScorer",
    "TrustScorer",
    "extract_topics",
    "recency",
]
