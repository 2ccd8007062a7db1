"""Configuration models."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..sections import SECTIONS
from .policies import DEFAULT_FRESHNESS_MAX_DAYS, SectionPolicy, default_section_policies

DEFAULT_BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
BOT_UA = "AtlasFeed/1.0 (+rss)"


class PostgresConfig(BaseModel):
    """Postgres configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("atlasfeed", description="Database name")
    user: str = Field("atlasfeed", description="Database user")
    password: Optional[str] = Field(None, description="Database password")
    password_env: Optional[str] = Field(None, description="Environment variable for password")


class IngestConfig(BaseModel):
    """Organic RSS ingestion tunables."""

    time_budget_seconds: float = Field(25.0, description="Global run budget (clamped to 8-120s)")
    max_sources_per_run: Optional[int] = Field(None, description="Default 16 in fast mode, else 120")
    fetch_concurrency: Optional[int] = Field(None, description="Default 4 in fast mode, else 8")
    request_timeout_seconds: float = Field(12.0, description="Per-request timeout", gt=0)
    no_repeat_hours: float = Field(12.0, description="URL no-repeat window", ge=0)
    source_cooldown_hours: float = Field(6.0, description="Source diversity cooldown", ge=0)
    max_admissions_per_section: int = Field(1, description="Admissions per section per run", ge=1)
    user_agent: str = Field(DEFAULT_BROWSER_UA, description="Primary User-Agent for feed requests")
    auto_disable_failing_sources: bool = Field(False, description="Disable sources after repeated failures")
    auto_disable_threshold: int = Field(25, description="Consecutive failures before disabling", ge=1)
    revive_disabled_sources: bool = Field(True, description="Re-enable auto-disabled sources at run start")
    fallback_enabled: bool = Field(True, description="Query fallback aggregators for empty sections")
    fallback_score: float = Field(0.76, description="Fixed score for fallback items", ge=0.0, le=1.0)
    fallback_max_items: int = Field(3, description="Fallback items considered per section", ge=0)
    freshness_max_days: Dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_FRESHNESS_MAX_DAYS),
        description="Maximum entry age per section",
    )


class ScoringConfig(BaseModel):
    """Candidate scoring weights.

    The four-term form is canonical. Setting ``quality_weight`` to 0 with
    0.55/0.35/0.10 reproduces the simpler two-term variant.
    """

    trust_weight: float = Field(0.33, ge=0.0, le=1.0)
    recency_weight: float = Field(0.42, ge=0.0, le=1.0)
    quality_weight: float = Field(0.18, ge=0.0, le=1.0)
    keyword_weight: float = Field(0.07, ge=0.0, le=1.0)
    keyword_boost_cap: float = Field(0.25, ge=0.0, le=1.0)
    diversity_penalty: float = Field(0.92, ge=0.0, le=1.0)
    low_quality_markers: List[str] = Field(
        default_factory=lambda: [
            "sponsored",
            "press release",
            "podcast",
            "newsletter",
            "advertorial",
            "webinar",
        ]
    )
    low_quality_penalty: float = Field(0.25, ge=0.0, le=1.0)

    @field_validator("trust_weight", "recency_weight", "quality_weight", "keyword_weight")
    @classmethod
    def validate_weights(cls, v: float, info) -> float:
        """Validate that weights sum to 1.0."""
        if info.field_name == "keyword_weight":
            total = (
                info.data.get("trust_weight", 0.33)
                + info.data.get("recency_weight", 0.42)
                + info.data.get("quality_weight", 0.18)
                + v
            )
            if abs(total - 1.0) > 0.001:
                raise ValueError(f"Weights must sum to 1.0, got {total}")
        return v


class RetentionConfig(BaseModel):
    """Global retention sweep."""

    item_retention_days: int = Field(7, description="Delete items collected before this horizon", ge=1)


class YouTubeFilters(BaseModel):
    """Quality gates for video discovery."""

    published_days: int = Field(60, ge=7, le=180)
    region_code: str = "US"
    relevance_language: str = "en"
    referer: Optional[str] = Field(None, description="Referer/Origin for key restrictions")
    min_views: int = Field(1000, ge=0)
    min_likes: int = Field(20, ge=0)
    min_views_per_day: float = Field(150.0, ge=0)
    min_duration_seconds: Dict[str, int] = Field(
        default_factory=lambda: {
            "global": 180,
            "tech": 240,
            "innovators": 240,
            "early": 180,
            "creators": 240,
            "universe": 300,
            "history": 300,
            "faith": 300,
        }
    )
    negative_keywords: List[str] = Field(
        default_factory=lambda: [
            "#shorts",
            "shorts",
            "reaction",
            "prank",
            "giveaway",
            "live stream",
            "livestream",
            "compilation",
        ]
    )


class DiscoveryConfig(BaseModel):
    """Multi-provider discovery path."""

    run_interval_hours: float = Field(12.0, description="Minimum hours between runs per section", ge=0)
    per_run_cap: int = Field(3, description="Items admitted per section per run", ge=1)
    daily_cap: int = Field(6, ge=1)
    weekly_cap: int = Field(42, ge=1)
    retention_days: int = Field(7, ge=1)
    request_timeout_seconds: float = Field(12.0, gt=0)
    github_token_env: str = "GITHUB_TOKEN"
    youtube_api_key_env: str = "YOUTUBE_API_KEY"
    x_bearer_token_env: str = "X_BEARER_TOKEN"
    youtube: YouTubeFilters = Field(default_factory=YouTubeFilters)


class ConfigModel(BaseModel):
    """Main configuration model."""

    sources_file: str = Field("sources.yaml", description="Sources file, relative to the config directory")
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    ingest: IngestConfig = Field(default_factory=IngestConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    retention: RetentionConfig = Field(default_factory=RetentionConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    sections: Dict[str, SectionPolicy] = Field(default_factory=default_section_policies)

    @field_validator("sections", mode="before")
    @classmethod
    def merge_section_overrides(cls, v: Any) -> Dict[str, Any]:
        """Overlay partial per-section overrides on the default table."""
        merged: Dict[str, Any] = {
            name: policy.model_dump() for name, policy in default_section_policies().items()
        }
        for name, override in (v or {}).items():
            if name not in SECTIONS:
                raise ValueError(f"Unknown section: {name}")
            if isinstance(override, SectionPolicy):
                override = override.model_dump()
            merged[name] = {**merged[name], **override}
        return merged


class SourceConfig(BaseModel):
    """Source entry from sources.yaml."""

    section: str = Field(..., description="Section key (legacy labels are normalized)")
    name: str = Field(..., description="Source name")
    url: str = Field(..., description="RSS/Atom feed URL")
    country: Optional[str] = Field(None, description="ISO country code")
    trust_score: int = Field(70, description="Operator-assigned credibility", ge=0, le=100)
    enabled: bool = Field(True, description="Whether source is enabled")
