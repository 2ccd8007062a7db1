"""Storage collaborator interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set

from pydantic import BaseModel, Field, field_validator

from ..models import IngestRun, Item, Source

WINDOW_FIELDS = ("created_at", "published_at")


class ItemQuery(BaseModel):
    """Scope of an item count/list/delete: one section, one time window."""

    since: datetime = Field(..., description="Inclusive lower bound on ``field``")
    field: str = Field("created_at", description="created_at or published_at")
    section: Optional[str] = None
    source_id: Optional[int] = None
    source_type: Optional[str] = Field(None, description="Only items whose source has this type")
    exclude_source_type: Optional[str] = Field(None, description="Skip items whose source has this type")

    @field_validator("field")
    @classmethod
    def validate_field(cls, v: str) -> str:
        """Only timestamp columns may bound a window."""
        if v not in WINDOW_FIELDS:
            raise ValueError(f"Unsupported window field: {v}")
        return v


class Store(ABC):
    """Async storage for sources, items and run audit records."""

    # Sources

    @abstractmethod
    async def upsert_source(self, source: Source) -> Source:
        """Insert or update a source keyed by ``url``; returns the stored row."""

    @abstractmethod
    async def list_sources(
        self,
        source_type: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> List[Source]:
        """Sources ordered by (last_fetched_at asc nulls first, trust desc, created_at asc)."""

    @abstractmethod
    async def count_sources(
        self,
        source_type: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> int:
        """Count sources."""

    @abstractmethod
    async def update_source(self, source_id: int, **fields: Any) -> None:
        """Update timestamps, section, enable flag or fail counter."""

    @abstractmethod
    async def record_fetch_failure(self, source_id: int) -> int:
        """Increment ``consecutive_fails`` and return the new value."""

    @abstractmethod
    async def reenable_sources(
        self,
        source_type: Optional[str] = None,
        exclude_source_type: Optional[str] = None,
        min_fails: Optional[int] = None,
    ) -> int:
        """Re-enable disabled sources; resets the fail counter when ``min_fails`` is given."""

    # Items

    @abstractmethod
    async def upsert_item(self, item: Item) -> Item:
        """Insert or update an item keyed by ``url``.

        ``item.created_at`` overwrites the stored collection time so refreshed
        items stay visible in collection-time windows.
        """

    @abstractmethod
    async def existing_urls(self, urls: Iterable[str]) -> Set[str]:
        """Subset of ``urls`` already stored."""

    @abstractmethod
    async def count_items(self, query: ItemQuery) -> int:
        """Count items in scope."""

    @abstractmethod
    async def list_items(self, query: ItemQuery, limit: Optional[int] = None) -> List[Item]:
        """Items in scope ranked by (score desc, created_at desc)."""

    @abstractmethod
    async def delete_items(self, query: ItemQuery, keep_ids: Iterable[int]) -> int:
        """Delete items in scope whose id is not in ``keep_ids``."""

    @abstractmethod
    async def delete_items_before(
        self,
        cutoff: datetime,
        section: Optional[str] = None,
        source_type: Optional[str] = None,
    ) -> int:
        """Delete items collected before ``cutoff``."""

    # Runs

    @abstractmethod
    async def create_run(self, kind: str, started_at: datetime) -> IngestRun:
        """Create a running audit record."""

    @abstractmethod
    async def finish_run(
        self,
        run_id: int,
        ok: bool,
        added: int,
        skipped: int,
        message: str,
        stats: Optional[Dict[str, Any]] = None,
        finished_at: Optional[datetime] = None,
    ) -> None:
        """Finalize an audit record."""

    # Administration

    @abstractmethod
    async def reset(self, include_sources: bool = False) -> Dict[str, int]:
        """Delete items and runs; reset or delete sources."""

    async def close(self) -> None:
        """Release backend resources."""
