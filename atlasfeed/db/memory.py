"""In-process store with the same semantics as the Postgres backend."""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set

import pendulum

from ..errors import PersistenceError
from ..models import IngestRun, Item, Source
from .store import ItemQuery, Store

_EPOCH = pendulum.datetime(1970, 1, 1, tz="UTC")


class MemoryStore(Store):
    """Dictionary-backed store for dry runs and tests."""

    def __init__(self) -> None:
        self.sources: Dict[int, Source] = {}
        self.items: Dict[int, Item] = {}
        self.runs: Dict[int, IngestRun] = {}
        self._next_id = {"sources": 1, "items": 1, "runs": 1}

    def _new_id(self, table: str) -> int:
        value = self._next_id[table]
        self._next_id[table] = value + 1
        return value

    # Sources

    async def upsert_source(self, source: Source) -> Source:
        now = pendulum.now("UTC")
        existing = next((s for s in self.sources.values() if s.url == source.url), None)
        if existing is None:
            stored = source.model_copy(
                update={
                    "id": self._new_id("sources"),
                    "created_at": source.created_at or now,
                    "updated_at": now,
                }
            )
            self.sources[stored.id] = stored
            return stored.model_copy()

        existing.section = source.section
        existing.name = source.name
        existing.type = source.type
        existing.country = source.country
        existing.trust_score = source.trust_score
        existing.enabled = source.enabled
        existing.updated_at = now
        return existing.model_copy()

    async def list_sources(
        self,
        source_type: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> List[Source]:
        rows = [
            s
            for s in self.sources.values()
            if (source_type is None or s.type.lower() == source_type.lower())
            and (enabled is None or s.enabled == enabled)
        ]
        rows.sort(
            key=lambda s: (
                s.last_fetched_at is not None,
                s.last_fetched_at or _EPOCH,
                -s.trust_score,
                s.created_at or _EPOCH,
                s.id,
            )
        )
        return [s.model_copy() for s in rows]

    async def count_sources(
        self,
        source_type: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> int:
        return len(await self.list_sources(source_type=source_type, enabled=enabled))

    async def update_source(self, source_id: int, **fields: Any) -> None:
        source = self.sources.get(source_id)
        if source is None:
            raise PersistenceError(f"Unknown source id {source_id}")
        for key, value in fields.items():
            setattr(source, key, value)
        source.updated_at = pendulum.now("UTC")

    async def record_fetch_failure(self, source_id: int) -> int:
        source = self.sources.get(source_id)
        if source is None:
            raise PersistenceError(f"Unknown source id {source_id}")
        source.consecutive_fails += 1
        return source.consecutive_fails

    async def reenable_sources(
        self,
        source_type: Optional[str] = None,
        exclude_source_type: Optional[str] = None,
        min_fails: Optional[int] = None,
    ) -> int:
        count = 0
        for source in self.sources.values():
            if source.enabled:
                continue
            if source_type is not None and source.type.lower() != source_type.lower():
                continue
            if exclude_source_type is not None and source.type.lower() == exclude_source_type.lower():
                continue
            if min_fails is not None:
                if source.consecutive_fails < min_fails:
                    continue
                source.consecutive_fails = 0
            source.enabled = True
            count += 1
        return count

    # Items

    def _in_scope(self, item: Item, query: ItemQuery) -> bool:
        if getattr(item, query.field) < query.since:
            return False
        if query.section is not None and item.section != query.section:
            return False
        if query.source_id is not None and item.source_id != query.source_id:
            return False
        source = self.sources.get(item.source_id)
        source_type = source.type if source else None
        if query.source_type is not None and source_type != query.source_type:
            return False
        if query.exclude_source_type is not None and source_type == query.exclude_source_type:
            return False
        return True

    async def upsert_item(self, item: Item) -> Item:
        if item.source_id not in self.sources:
            raise PersistenceError(f"Item references unknown source {item.source_id}")

        now = pendulum.now("UTC")
        existing = next((i for i in self.items.values() if i.url == item.url), None)
        if existing is None:
            stored = item.model_copy(
                update={"id": self._new_id("items"), "created_at": item.created_at or now, "updated_at": now}
            )
            self.items[stored.id] = stored
            return stored.model_copy()

        updated = item.model_copy(
            update={"id": existing.id, "created_at": item.created_at or now, "updated_at": now}
        )
        self.items[existing.id] = updated
        return updated.model_copy()

    async def existing_urls(self, urls: Iterable[str]) -> Set[str]:
        wanted = set(urls)
        return {i.url for i in self.items.values() if i.url in wanted}

    async def count_items(self, query: ItemQuery) -> int:
        return sum(1 for i in self.items.values() if self._in_scope(i, query))

    async def list_items(self, query: ItemQuery, limit: Optional[int] = None) -> List[Item]:
        rows = [i for i in self.items.values() if self._in_scope(i, query)]
        rows.sort(key=lambda i: (i.score, i.created_at or _EPOCH), reverse=True)
        if limit is not None:
            rows = rows[:limit]
        return [i.model_copy() for i in rows]

    async def delete_items(self, query: ItemQuery, keep_ids: Iterable[int]) -> int:
        keep = set(keep_ids)
        doomed = [i.id for i in self.items.values() if self._in_scope(i, query) and i.id not in keep]
        for item_id in doomed:
            del self.items[item_id]
        return len(doomed)

    async def delete_items_before(
        self,
        cutoff: datetime,
        section: Optional[str] = None,
        source_type: Optional[str] = None,
    ) -> int:
        doomed = []
        for item in self.items.values():
            if item.created_at is None or item.created_at >= cutoff:
                continue
            if section is not None and item.section != section:
                continue
            if source_type is not None:
                source = self.sources.get(item.source_id)
                if source is None or source.type != source_type:
                    continue
            doomed.append(item.id)
        for item_id in doomed:
            del self.items[item_id]
        return len(doomed)

    # Runs

    async def create_run(self, kind: str, started_at: datetime) -> IngestRun:
        run = IngestRun(id=self._new_id("runs"), kind=kind, started_at=started_at, created_at=started_at)
        self.runs[run.id] = run
        return run.model_copy()

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
        run = self.runs[run_id]
        run.ok = ok
        run.added = added
        run.skipped = skipped
        run.message = message
        run.stats_json = stats
        run.finished_at = finished_at or pendulum.now("UTC")

    # Administration

    async def reset(self, include_sources: bool = False) -> Dict[str, int]:
        counts = {"items": len(self.items), "runs": len(self.runs), "sources": 0}
        self.items.clear()
        self.runs.clear()
        if include_sources:
            counts["sources"] = len(self.sources)
            self.sources.clear()
        else:
            for source in self.sources.values():
                source.last_fetched_at = None
                source.last_ok_at = None
                source.consecutive_fails = 0
        return counts
