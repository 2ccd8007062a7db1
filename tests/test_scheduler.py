import asyncio

import pytest

from atlasfeed.config import IngestConfig, default_section_policies
from atlasfeed.models import Source
from atlasfeed.pipeline import Deadline, RunLimits, run_pool, select_sources
from atlasfeed.pipeline.deadline import clamp_budget
from atlasfeed.pipeline.scheduler import FAST_SAFETY_MARGIN_SECONDS, SAFETY_MARGIN_SECONDS


def _source(source_id, section, trust=80):
    return Source(
        id=source_id,
        url=f"https://{section}.example/{source_id}",
        section=section,
        name=f"{section}-{source_id}",
        trust_score=trust,
    )


def test_default_limits():
    limits = RunLimits.from_config(IngestConfig())
    assert limits.budget_seconds == 25
    assert limits.fast_mode is False
    assert limits.max_sources == 120
    assert limits.concurrency == 8
    assert limits.safety_margin == SAFETY_MARGIN_SECONDS


def test_fast_mode_limits():
    limits = RunLimits.from_config(IngestConfig(time_budget_seconds=10))
    assert limits.fast_mode is True
    assert limits.max_sources == 16
    assert limits.concurrency == 4
    assert limits.safety_margin == FAST_SAFETY_MARGIN_SECONDS


@pytest.mark.parametrize(
    "fields,expected",
    [
        ({"max_sources_per_run": 3, "fetch_concurrency": 1}, (8, 2)),
        ({"max_sources_per_run": 1000, "fetch_concurrency": 50}, (600, 20)),
        ({"max_sources_per_run": 40, "fetch_concurrency": 6}, (40, 6)),
    ],
)
def test_limits_are_clamped(fields, expected):
    limits = RunLimits.from_config(IngestConfig(**fields))
    assert (limits.max_sources, limits.concurrency) == expected


def test_budget_is_clamped():
    assert clamp_budget(1) == 8
    assert clamp_budget(500) == 120
    assert clamp_budget(30) == 30


def test_round_robin_across_sections():
    sources = [
        _source(1, "global"),
        _source(2, "global"),
        _source(3, "global"),
        _source(4, "tech"),
        _source(5, "faith", trust=40),
        _source(6, "faith", trust=40),
    ]

    selected = select_sources(sources, default_section_policies(), max_sources=16)

    assert [s.id for s in selected] == [1, 4, 5, 2, 6]


def test_trust_floor_filters_pool():
    sources = [_source(1, "global", trust=30), _source(2, "global", trust=90)]
    selected = select_sources(sources, default_section_policies(), max_sources=16)
    assert [s.id for s in selected] == [2]


def test_selection_respects_max_sources():
    sections = ["global", "tech", "innovators", "early", "creators", "universe", "history", "faith"]
    sources = [_source(n * 10 + k, section) for n, section in enumerate(sections) for k in range(2)]

    selected = select_sources(sources, default_section_policies(), max_sources=8)

    assert len(selected) == 8
    assert len({s.section for s in selected}) == 8


def test_legacy_section_labels_are_grouped():
    selected = select_sources([_source(1, "World News")], default_section_policies(), max_sources=16)
    assert [s.id for s in selected] == [1]


async def test_run_pool_processes_everything(clock):
    async def worker(n):
        return n * 2

    results, stopped = await run_pool([1, 2, 3], worker, concurrency=2, deadline=Deadline(25, clock=clock), margin=2.2)

    assert sorted(results) == [2, 4, 6]
    assert stopped is False


async def test_run_pool_stops_at_safety_margin(clock):
    async def worker(n):
        clock.advance(5)
        return n

    results, stopped = await run_pool(
        [1, 2, 3, 4, 5], worker, concurrency=1, deadline=Deadline(10, clock=clock), margin=2.2
    )

    assert results == [1, 2]
    assert stopped is True


async def test_run_pool_bounds_concurrency(clock):
    active = 0
    peak = 0

    async def worker(n):
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0)
        active -= 1
        return n

    results, _ = await run_pool(list(range(20)), worker, concurrency=3, deadline=Deadline(25, clock=clock), margin=2.2)

    assert len(results) == 20
    assert peak == 3


def test_deadline(clock):
    deadline = Deadline(10, clock=clock)
    assert deadline.remaining() == 10
    clock.advance(8.5)
    assert deadline.within_margin(2.2)
    assert not deadline.within_margin(1.0)
    assert deadline.fast_mode is True
