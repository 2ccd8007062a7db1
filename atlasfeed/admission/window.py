"""Window/cap tracker and dedup/cooldown guard.

All admission decisions and counter updates for a run go through one
``AdmissionCoordinator``; its lock is the single writer for the shared state.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Set

import pendulum
from rich.console import Console

from ..config import SectionPolicy
from ..db import ItemQuery, Store
from ..errors import PersistenceConflict, PersistenceError
from ..ingestion.models import Candidate
from ..models import SOURCE_TYPE_DISCOVERY, Item
from ..ranking.scorers import clamp
from ..sections import window_field

console = Console()

DAY = timedelta(days=1)
WEEK = timedelta(weeks=1)
MONTH = timedelta(days=30)


@dataclass
class SectionWindow:
    """Rolling counts and guard sets for one section."""

    section: str
    policy: SectionPolicy
    day_count: int = 0
    week_count: int = 0
    month_count: int = 0
    recent_urls: Set[str] = field(default_factory=set)
    recent_sources: Set[int] = field(default_factory=set)

    def caps_reached(self) -> bool:
        return (
            self.day_count >= self.policy.daily_cap
            or self.week_count >= self.policy.weekly_cap
            or self.month_count >= self.policy.monthly_cap
        )

    def bump(self, timestamp: datetime, now: datetime) -> None:
        """Count a new admission in every window ``timestamp`` falls into."""
        if timestamp >= now - DAY:
            self.day_count += 1
        if timestamp >= now - WEEK:
            self.week_count += 1
        if timestamp >= now - MONTH:
            self.month_count += 1


@dataclass
class AdmissionOutcome:
    """Result of admitting one section's candidate pool."""

    added: int = 0
    skipped: int = 0
    duplicates: int = 0
    skipped_by_caps: int = 0
    admitted: List[Candidate] = field(default_factory=list)


def rank_candidates(
    candidates: Iterable[Candidate],
    recent_sources: Iterable[int] = (),
    diversity_penalty: float = 1.0,
) -> List[Candidate]:
    """Order by (score desc, published_at desc) after the source cooldown penalty."""
    recent = set(recent_sources)
    ranked = []
    for candidate in candidates:
        if candidate.source_id in recent:
            candidate = candidate.model_copy(update={"score": clamp(candidate.score * diversity_penalty)})
        ranked.append(candidate)
    ranked.sort(key=lambda c: (c.score, c.published_at), reverse=True)
    return ranked


class AdmissionCoordinator:
    """Single writer for a run's per-section windows."""

    def __init__(
        self,
        store: Store,
        windows: Dict[str, SectionWindow],
        now: datetime,
        diversity_penalty: float = 0.92,
    ) -> None:
        self.store = store
        self.windows = windows
        self.now = now
        self.diversity_penalty = diversity_penalty
        self._lock = asyncio.Lock()

    @classmethod
    async def load(
        cls,
        store: Store,
        policies: Dict[str, SectionPolicy],
        now: Optional[datetime] = None,
        no_repeat_hours: float = 12.0,
        cooldown_hours: float = 6.0,
        diversity_penalty: float = 0.92,
    ) -> "AdmissionCoordinator":
        """Recompute counts and guard sets from storage."""
        now = now or pendulum.now("UTC")
        windows = {}
        for section, policy in policies.items():
            windows[section] = await load_section_window(
                store, section, policy, now, no_repeat_hours, cooldown_hours
            )
        return cls(store, windows, now, diversity_penalty=diversity_penalty)

    def window(self, section: str) -> SectionWindow:
        return self.windows[section]

    async def admit(self, section: str, candidates: Iterable[Candidate], limit: int = 1) -> AdmissionOutcome:
        """Admit up to ``limit`` candidates from a section's pooled candidates.

        Candidates whose URL was admitted within the no-repeat window are
        passed over. Admission stops once any of the section's caps is reached.
        """
        async with self._lock:
            window = self.windows[section]
            outcome = AdmissionOutcome()
            ranked = rank_candidates(candidates, window.recent_sources, self.diversity_penalty)

            for candidate in ranked:
                if outcome.added >= limit:
                    break
                if candidate.url in window.recent_urls:
                    outcome.duplicates += 1
                    continue
                if window.caps_reached():
                    outcome.skipped_by_caps += 1
                    break

                try:
                    await self.store.upsert_item(self._to_item(candidate))
                except PersistenceConflict:
                    pass
                except PersistenceError as e:
                    console.print(f"[yellow]Could not store {candidate.url}: {e}[/yellow]")
                    outcome.skipped += 1
                    continue

                self._record(window, candidate)
                outcome.added += 1
                outcome.admitted.append(candidate)

            return outcome

    def _to_item(self, candidate: Candidate) -> Item:
        return Item(
            url=candidate.url,
            source_id=candidate.source_id,
            section=candidate.section,
            title=candidate.title,
            summary=candidate.snippet or candidate.title,
            country=candidate.country,
            topics=candidate.topics,
            score=candidate.score,
            published_at=candidate.published_at,
            created_at=self.now,
        )

    def _record(self, window: SectionWindow, candidate: Candidate) -> None:
        if window_field(window.section) == "created_at":
            timestamp = self.now
        else:
            timestamp = candidate.published_at
        window.bump(timestamp, self.now)
        window.recent_urls.add(candidate.url)
        window.recent_sources.add(candidate.source_id)


async def load_section_window(
    store: Store,
    section: str,
    policy: SectionPolicy,
    now: datetime,
    no_repeat_hours: float = 12.0,
    cooldown_hours: float = 6.0,
) -> SectionWindow:
    """Build a section's window from storage; discovery items are not counted."""
    field_name = window_field(section)

    def scope(since: datetime, field: str = field_name) -> ItemQuery:
        return ItemQuery(
            since=since,
            field=field,
            section=section,
            exclude_source_type=SOURCE_TYPE_DISCOVERY,
        )

    window = SectionWindow(section=section, policy=policy)
    window.day_count = await store.count_items(scope(now - DAY))
    window.week_count = await store.count_items(scope(now - WEEK))
    window.month_count = await store.count_items(scope(now - MONTH))

    recent = await store.list_items(
        ItemQuery(since=now - timedelta(hours=no_repeat_hours), field="created_at", section=section)
    )
    window.recent_urls = {item.url for item in recent}

    cooling = await store.list_items(
        ItemQuery(since=now - timedelta(hours=cooldown_hours), field="created_at", section=section)
    )
    window.recent_sources = {item.source_id for item in cooling}

    return window
