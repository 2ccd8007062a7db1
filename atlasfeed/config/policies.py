"""Default Section Policy Table."""

from typing import Dict, List

from pydantic import BaseModel, Field


class KeywordBoost(BaseModel):
    """Additive score bonus for a keyword found in title or snippet."""

    keyword: str = Field(..., description="Case-insensitive substring")
    boost: float = Field(..., description="Additive bonus", ge=0.0, le=1.0)


class SectionPolicy(BaseModel):
    """Caps, retention and scoring parameters for one section."""

    per_run_cap: int = Field(2, description="Candidates kept per fetched source per run", ge=1)
    daily_cap: int = Field(24, description="Items kept in the day window", ge=0)
    weekly_cap: int = Field(168, description="Items kept in the week window", ge=0)
    monthly_cap: int = Field(168, description="Items kept in the month window", ge=0)
    retention_days: int = Field(7, description="Rolling retention", ge=1)
    recency_half_life_hours: float = Field(24.0, description="Recency half-life", gt=0)
    min_trust_score: int = Field(60, description="Trust floor for source selection", ge=0, le=100)
    keyword_boosts: List[KeywordBoost] = Field(default_factory=list)


# Hourly ingest admitting at most one item per section per run gives
# 24 items per day and 168 per week.
DAILY_CAP = 24
WEEKLY_CAP = 168


def _policy(
    half_life: float,
    boosts: List[tuple],
    per_run_cap: int = 2,
    min_trust: int = 60,
) -> SectionPolicy:
    return SectionPolicy(
        per_run_cap=per_run_cap,
        daily_cap=DAILY_CAP,
        weekly_cap=WEEKLY_CAP,
        monthly_cap=WEEKLY_CAP,
        retention_days=7,
        recency_half_life_hours=half_life,
        min_trust_score=min_trust,
        keyword_boosts=[KeywordBoost(keyword=k, boost=b) for k, b in boosts],
    )


def default_section_policies() -> Dict[str, SectionPolicy]:
    """Build a fresh copy of the default policy table."""
    return {
        "global": _policy(
            12,
            [("election", 0.08), ("ceasefire", 0.08), ("sanctions", 0.06), ("quake", 0.06), ("inflation", 0.06)],
        ),
        "tech": _policy(
            16,
            [("ai", 0.08), ("security", 0.06), ("breach", 0.06), ("chip", 0.06), ("open-source", 0.06)],
        ),
        "innovators": _policy(
            36,
            [("robot", 0.08), ("aerospace", 0.08), ("prototype", 0.06), ("funding", 0.06), ("lab", 0.04)],
        ),
        "early": _policy(
            18,
            [("patent", 0.10), ("arxiv", 0.08), ("preprint", 0.08), ("filing", 0.06), ("paper", 0.04)],
            per_run_cap=3,
        ),
        "creators": _policy(
            96,
            [("course", 0.08), ("tutorial", 0.06), ("community", 0.06), ("guide", 0.04)],
            per_run_cap=3,
            min_trust=55,
        ),
        "universe": _policy(
            48,
            [("webb", 0.10), ("exoplanet", 0.08), ("telescope", 0.06), ("mars", 0.06), ("nasa", 0.04)],
        ),
        "history": _policy(
            240,
            [("caliphate", 0.06), ("andalus", 0.06), ("ottoman", 0.06), ("trade", 0.04), ("dynasty", 0.04)],
            min_trust=55,
        ),
        "faith": _policy(
            72,
            [("quran", 0.08), ("hadith", 0.06), ("sunnah", 0.06), ("fiqh", 0.06), ("dua", 0.04)],
            min_trust=55,
        ),
    }


# Entries older than this (days) are dropped before scoring.
DEFAULT_FRESHNESS_MAX_DAYS: Dict[str, int] = {
    "global": 21,
    "tech": 21,
    "innovators": 60,
    "early": 30,
    "creators": 180,
    "universe": 90,
    "history": 3650,
    "faith": 180,
}
