"""Retention/cap pruner.

Admission only checks counts; pruning ranks what is stored and trims each
window to its cap, so a newly admitted high-score item can evict an older,
lower-score one.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

import pendulum
from rich.console import Console

from ..config import DiscoveryConfig, SectionPolicy
from ..db import ItemQuery, Store
from ..models import SOURCE_TYPE_DISCOVERY
from ..sections import window_field
from .window import DAY, MONTH, WEEK

console = Console()


async def _trim_window(
    store: Store,
    query: ItemQuery,
    cap: int,
    keep: Optional[List[int]] = None,
) -> List[int]:
    """Keep ``keep`` plus the best-ranked items up to ``cap``; delete the rest of the window."""
    kept = list(keep or [])
    kept_set = set(kept)
    for item in await store.list_items(query, limit=cap + len(kept)):
        if len(kept) >= cap:
            break
        if item.id not in kept_set:
            kept.append(item.id)
            kept_set.add(item.id)

    await store.delete_items(query, keep_ids=kept)
    return kept


async def enforce_section_caps(
    store: Store,
    section: str,
    policy: SectionPolicy,
    now: Optional[datetime] = None,
) -> int:
    """Trim a section's organic items to its daily, weekly and (history only) monthly caps.

    Returns:
        Number of deleted items
    """
    now = now or pendulum.now("UTC")
    field_name = window_field(section)

    def scope(span: timedelta) -> ItemQuery:
        return ItemQuery(
            since=now - span,
            field=field_name,
            section=section,
            exclude_source_type=SOURCE_TYPE_DISCOVERY,
        )

    before = await store.count_items(scope(MONTH if section == "history" else WEEK))

    day_keep = await _trim_window(store, scope(DAY), policy.daily_cap)
    week_keep = await _trim_window(store, scope(WEEK), max(policy.weekly_cap, len(day_keep)), day_keep)
    if section == "history":
        await _trim_window(store, scope(MONTH), max(policy.monthly_cap, len(week_keep)), week_keep)

    after = await store.count_items(scope(MONTH if section == "history" else WEEK))
    return before - after


async def enforce_discovery_caps(
    store: Store,
    section: str,
    config: DiscoveryConfig,
    now: Optional[datetime] = None,
) -> int:
    """Trim a section's discovery items to the discovery caps and retention."""
    now = now or pendulum.now("UTC")

    def scope(span: timedelta) -> ItemQuery:
        return ItemQuery(
            since=now - span,
            field="created_at",
            section=section,
            source_type=SOURCE_TYPE_DISCOVERY,
        )

    before = await store.count_items(scope(WEEK))
    day_keep = await _trim_window(store, scope(DAY), config.daily_cap)
    await _trim_window(store, scope(WEEK), max(config.weekly_cap, len(day_keep)), day_keep)
    after = await store.count_items(scope(WEEK))

    expired = await store.delete_items_before(
        now - timedelta(days=config.retention_days),
        section=section,
        source_type=SOURCE_TYPE_DISCOVERY,
    )
    return before - after + expired


async def sweep_expired(store: Store, retention_days: int, now: Optional[datetime] = None) -> int:
    """Delete every item collected before the retention horizon, regardless of section."""
    now = now or pendulum.now("UTC")
    return await store.delete_items_before(now - timedelta(days=retention_days))


async def prune_sections(
    store: Store,
    policies: Dict[str, SectionPolicy],
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """Run cap enforcement for every section."""
    now = now or pendulum.now("UTC")
    pruned = {}
    for section, policy in policies.items():
        pruned[section] = await enforce_section_caps(store, section, policy, now)
    return pruned
