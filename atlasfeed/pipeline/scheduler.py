"""Fetch scheduler: fair source selection and a deadline-aware worker pool."""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from ..config import IngestConfig, SectionPolicy
from ..errors import BudgetExceeded
from ..models import Source
from ..sections import SECTIONS, to_canonical_section
from .deadline import FAST_MODE_BUDGET_SECONDS, Deadline, clamp_budget

T = TypeVar("T")
R = TypeVar("R")

FAST_SAFETY_MARGIN_SECONDS = 0.9
SAFETY_MARGIN_SECONDS = 2.2
PRUNE_MIN_REMAINING_SECONDS = 3.5


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


@dataclass
class RunLimits:
    """Clamped per-run limits."""

    budget_seconds: float
    fast_mode: bool
    max_sources: int
    concurrency: int
    safety_margin: float
    prune_min_remaining: float = PRUNE_MIN_REMAINING_SECONDS

    @classmethod
    def from_config(cls, config: IngestConfig) -> "RunLimits":
        budget = clamp_budget(config.time_budget_seconds)
        fast_mode = budget <= FAST_MODE_BUDGET_SECONDS

        max_sources = config.max_sources_per_run
        if max_sources is None:
            max_sources = 16 if fast_mode else 120

        concurrency = config.fetch_concurrency
        if concurrency is None:
            concurrency = 4 if fast_mode else 8

        return cls(
            budget_seconds=budget,
            fast_mode=fast_mode,
            max_sources=_clamp(max_sources, 8, 600),
            concurrency=_clamp(concurrency, 2, 20),
            safety_margin=FAST_SAFETY_MARGIN_SECONDS if fast_mode else SAFETY_MARGIN_SECONDS,
        )


def group_by_section(sources: Sequence[Source]) -> Dict[str, List[Source]]:
    """Bucket sources under their canonical section, preserving order."""
    groups: Dict[str, List[Source]] = {section: [] for section in SECTIONS}
    for source in sources:
        groups[to_canonical_section(source.section)].append(source)
    return groups


def select_sources(
    sources: Sequence[Source],
    policies: Dict[str, SectionPolicy],
    max_sources: int,
) -> List[Source]:
    """Pick at most ``max_sources`` sources round-robin across sections.

    ``sources`` must already be ordered by (last_fetched_at asc nulls first,
    trust desc, created_at asc). Each section draws from its trust-filtered
    pool, or from all its sources if none pass the trust floor.
    """
    groups = group_by_section(sources)
    pools: Dict[str, List[Source]] = {}
    for section in SECTIONS:
        base = groups.get(section, [])
        policy = policies.get(section)
        floor = policy.min_trust_score if policy else 0
        pool = [s for s in base if s.trust_score >= floor]
        pools[section] = pool or base

    per_section = _clamp(max_sources // len(SECTIONS), 2, 10)

    selected: List[Source] = []
    for i in range(per_section):
        pushed = False
        for section in SECTIONS:
            pool = pools[section]
            if i >= len(pool):
                continue
            selected.append(pool[i])
            pushed = True
            if len(selected) >= max_sources:
                return selected
        if not pushed:
            break

    return selected


async def run_pool(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    concurrency: int,
    deadline: Deadline,
    margin: float,
) -> Tuple[List[R], bool]:
    """Run ``worker`` over ``items`` with ``concurrency`` tasks.

    Before taking each item a task checks the deadline; once inside the safety
    margin no new work is started.

    Returns:
        Results in completion order and whether the run stopped early
    """
    queue: asyncio.Queue = asyncio.Queue()
    for item in items:
        queue.put_nowait(item)

    results: List[R] = []
    stopped_early = False

    async def consume() -> None:
        nonlocal stopped_early
        while not queue.empty():
            try:
                deadline.check(margin)
            except BudgetExceeded:
                stopped_early = True
                return
            try:
                item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            results.append(await worker(item))

    await asyncio.gather(*(consume() for _ in range(max(1, concurrency))))

    # Work left in the queue means the deadline cut the run short.
    if not queue.empty():
        stopped_early = True

    return results, stopped_early
