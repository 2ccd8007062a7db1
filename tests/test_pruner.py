from atlasfeed.admission import enforce_discovery_caps, enforce_section_caps, prune_sections, sweep_expired
from atlasfeed.config import DiscoveryConfig, SectionPolicy, default_section_policies
from atlasfeed.models import Item

from .helpers import NOW, add_source


async def _item(store, source_id, url, score, section="global", published_hours=1, created_hours=None):
    created_hours = published_hours if created_hours is None else created_hours
    return await store.upsert_item(
        Item(
            url=url,
            source_id=source_id,
            section=section,
            title=url,
            score=score,
            published_at=NOW.subtract(hours=published_hours),
            created_at=NOW.subtract(hours=created_hours),
        )
    )


def _urls(store):
    return sorted(i.url for i in store.items.values())


async def test_daily_and_weekly_caps_keep_best_items(store):
    source = await add_source(store, "https://a.example/rss")
    for n, score in enumerate([0.1, 0.2, 0.3, 0.4]):
        await _item(store, source.id, f"https://a.example/day{n}", score)
    await _item(store, source.id, "https://a.example/week-good", 0.9, published_hours=72)
    await _item(store, source.id, "https://a.example/week-bad", 0.05, published_hours=72)

    deleted = await enforce_section_caps(store, "global", SectionPolicy(daily_cap=2, weekly_cap=3), NOW)

    assert deleted == 3
    assert _urls(store) == [
        "https://a.example/day2",
        "https://a.example/day3",
        "https://a.example/week-good",
    ]


async def test_history_caps_follow_collection_time(store):
    source = await add_source(store, "https://heritage.example/rss", section="history")
    old = 24 * 365 * 3
    await _item(store, source.id, "https://heritage.example/1", 0.5, "history", published_hours=old, created_hours=1)
    await _item(store, source.id, "https://heritage.example/2", 0.6, "history", published_hours=old, created_hours=2)

    deleted = await enforce_section_caps(store, "history", SectionPolicy(daily_cap=1), NOW)

    assert deleted == 1
    assert _urls(store) == ["https://heritage.example/2"]


async def test_old_publications_are_outside_published_windows(store):
    source = await add_source(store, "https://a.example/rss")
    old = 24 * 365
    await _item(store, source.id, "https://a.example/1", 0.5, published_hours=old, created_hours=1)
    await _item(store, source.id, "https://a.example/2", 0.6, published_hours=old, created_hours=1)

    assert await enforce_section_caps(store, "global", SectionPolicy(daily_cap=1), NOW) == 0
    assert len(store.items) == 2


async def test_history_monthly_cap(store):
    source = await add_source(store, "https://heritage.example/rss", section="history")
    for n in range(3):
        await _item(store, source.id, f"https://heritage.example/{n}", 0.1 * (n + 1), "history", created_hours=24 * 14)

    policy = SectionPolicy(daily_cap=5, weekly_cap=5, monthly_cap=2)
    assert await enforce_section_caps(store, "history", policy, NOW) == 1
    assert _urls(store) == ["https://heritage.example/1", "https://heritage.example/2"]


async def test_section_caps_ignore_discovery_items(store):
    discovery = await add_source(store, "discovery:global", source_type="discovery")
    await _item(store, discovery.id, "https://video.example/1", 0.5)
    await _item(store, discovery.id, "https://video.example/2", 0.6)

    assert await enforce_section_caps(store, "global", SectionPolicy(daily_cap=1), NOW) == 0
    assert len(store.items) == 2


async def test_discovery_caps_and_retention(store):
    discovery = await add_source(store, "discovery:tech", section="tech", source_type="discovery")
    organic = await add_source(store, "https://tech.example/rss", section="tech")
    await _item(store, discovery.id, "https://d.example/today-a", 0.9, "tech")
    await _item(store, discovery.id, "https://d.example/today-b", 0.8, "tech")
    await _item(store, discovery.id, "https://d.example/week-a", 0.7, "tech", published_hours=72)
    await _item(store, discovery.id, "https://d.example/week-b", 0.6, "tech", published_hours=72)
    await _item(store, discovery.id, "https://d.example/expired", 0.9, "tech", published_hours=240)
    await _item(store, organic.id, "https://tech.example/old", 0.9, "tech", published_hours=240)

    config = DiscoveryConfig(daily_cap=1, weekly_cap=2, retention_days=7)
    deleted = await enforce_discovery_caps(store, "tech", config, NOW)

    assert deleted == 3
    assert _urls(store) == [
        "https://d.example/today-a",
        "https://d.example/week-a",
        "https://tech.example/old",
    ]


async def test_sweep_expired_ignores_section(store):
    source = await add_source(store, "https://a.example/rss")
    await _item(store, source.id, "https://a.example/fresh", 0.5, published_hours=24)
    await _item(store, source.id, "https://a.example/stale", 0.5, "history", published_hours=24 * 8)

    assert await sweep_expired(store, retention_days=7, now=NOW) == 1
    assert _urls(store) == ["https://a.example/fresh"]


async def test_prune_sections_reports_per_section(store):
    source = await add_source(store, "https://a.example/rss")
    for n in range(30):
        await _item(store, source.id, f"https://a.example/{n}", 0.5)

    pruned = await prune_sections(store, default_section_policies(), NOW)

    assert pruned["global"] == 6
    assert pruned["tech"] == 0
    assert len(store.items) == 24
