"""Item model for admitted content."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .base import DBModel


class Item(DBModel):
    """Admitted item. ``url`` is the global dedup key; ``created_at`` is collection time."""

    url: str = Field(..., description="Canonical item URL (unique)")
    source_id: int = Field(..., description="Owning source")
    section: str = Field(..., description="Section key")
    title: str = Field(..., description="Item title")
    summary: str = Field("", description="Feed snippet")
    country: Optional[str] = Field(None, description="Country inherited from the source")
    topics: List[str] = Field(default_factory=list, description="At most two topic codes")
    score: float = Field(0.0, description="Composite score", ge=0.0, le=1.0)
    published_at: datetime = Field(..., description="Publication timestamp")
