"""Data models for ingestion."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class FeedEntry(BaseModel):
    """Parsed RSS/Atom entry."""

    title: str = Field(..., description="Entry title")
    url: str = Field(..., description="Entry URL")
    snippet: str = Field("", description="Plain-text summary, at most 480 chars")
    published_at: datetime = Field(..., description="Publication date (fetch time when missing)")
    categories: List[str] = Field(default_factory=list, description="Feed-provided categories")


class Candidate(BaseModel):
    """Scored, not-yet-admitted item."""

    title: str = Field(..., description="Item title")
    url: str = Field(..., description="Item URL")
    snippet: str = Field("", description="Plain-text summary")
    published_at: datetime = Field(..., description="Publication date")
    section: str = Field(..., description="Canonical section")
    source_id: int = Field(..., description="Source that produced the candidate")
    country: Optional[str] = Field(None, description="Country inherited from the source")
    topics: List[str] = Field(default_factory=list, description="Topic codes")
    score: float = Field(0.0, description="Composite score", ge=0.0, le=1.0)
    provider: Optional[str] = Field(None, description="Discovery provider name")


class FetchResult(BaseModel):
    """Outcome of fetching one source."""

    source_id: int = Field(..., description="Source database ID")
    source_name: str = Field(..., description="Source name")
    success: bool = Field(..., description="Whether the feed was fetched and parsed")
    entries_seen: int = Field(0, description="Entries in the parsed feed")
    candidates: List[Candidate] = Field(default_factory=list, description="Best candidates kept")
    error: Optional[str] = Field(None, description="Error message if failed")
