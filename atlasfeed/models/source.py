"""Source model for feeds and synthetic provider rows."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from .base import DBModel

SOURCE_TYPE_RSS = "rss"
SOURCE_TYPE_FALLBACK = "fallback"
SOURCE_TYPE_DISCOVERY = "discovery"


class Source(DBModel):
    """Feed source model.

    ``type`` is ``rss`` for organic feeds, ``fallback`` for the per-section
    aggregator rows and ``discovery`` for the per-section discovery rows.
    """

    url: str = Field(..., description="Feed URL or synthetic key (unique)")
    section: str = Field(..., description="Section key")
    name: str = Field(..., description="Source name")
    type: str = Field(SOURCE_TYPE_RSS, description="rss, fallback or discovery")
    country: Optional[str] = Field(None, description="ISO country code")
    trust_score: int = Field(70, description="Operator-assigned credibility", ge=0, le=100)
    enabled: bool = Field(True, description="Whether the source is enabled")
    last_fetched_at: Optional[datetime] = Field(None, description="Last fetch attempt")
    last_ok_at: Optional[datetime] = Field(None, description="Last successful fetch")
    consecutive_fails: int = Field(0, description="Failures since last success", ge=0)
