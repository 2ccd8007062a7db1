"""Discovery pipeline: per-section multi-provider gathering with provider-diverse admission."""

import asyncio
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

import pendulum
from rich.console import Console
from rich.table import Table

from ..admission import enforce_discovery_caps
from ..config import ConfigModel
from ..db import ItemQuery, Store
from ..errors import PersistenceConflict, PersistenceError
from ..ingestion import FeedFetcher, normalize_title_key, normalize_url
from ..models import SOURCE_TYPE_DISCOVERY, Item, Source
from ..pipeline.models import RunResult
from ..ranking import CandidateScorer, extract_topics
from ..sections import SECTIONS
from .providers import DiscoveredEntry, DiscoveryProvider, build_providers

console = Console()

DISCOVERY_SOURCE_NAME = "Discovery"
DISCOVERY_TRUST_SCORE = 65


def discovery_source_url(section: str) -> str:
    return f"discovery:{section}"


def dedup_entries(entries: List[DiscoveredEntry]) -> List[DiscoveredEntry]:
    """Drop repeats by normalized URL or normalized title; URLs come back normalized."""
    seen_urls = set()
    seen_titles = set()
    unique = []
    for entry in entries:
        url = normalize_url(entry.url)
        title_key = normalize_title_key(entry.title)
        if not url or not title_key:
            continue
        if url in seen_urls or title_key in seen_titles:
            continue
        seen_urls.add(url)
        seen_titles.add(title_key)
        unique.append(entry.model_copy(update={"url": url}))
    return unique


def pick_per_provider(ranked: List[Tuple[DiscoveredEntry, float]], limit: int) -> List[Tuple[DiscoveredEntry, float]]:
    """Best entry from each provider, in rank order, at most ``limit``."""
    picked = []
    used = set()
    for entry, score in ranked:
        if len(picked) >= limit:
            break
        if entry.provider in used:
            continue
        used.add(entry.provider)
        picked.append((entry, score))
    return picked


class DiscoveryPipeline:
    """Runs discovery for every section that is due."""

    def __init__(
        self,
        config: ConfigModel,
        store: Store,
        providers: List[DiscoveryProvider],
        quiet: bool = False,
    ) -> None:
        self.config = config
        self.store = store
        self.providers = providers
        self.quiet = quiet

    async def _gather(self, section: str, now: datetime, stats: Dict) -> List[DiscoveredEntry]:
        results = await asyncio.gather(
            *(provider.discover(section, now=now) for provider in self.providers),
            return_exceptions=True,
        )

        entries: List[DiscoveredEntry] = []
        for provider, result in zip(self.providers, results):
            if isinstance(result, Exception):
                console.print(f"[yellow]{provider.name} discovery failed for {section}: {result}[/yellow]")
                stats["provider_errors"] += 1
                continue
            if isinstance(result, BaseException):
                raise result
            entries.extend(result)
        return entries

    async def _ensure_source(self, section: str) -> Source:
        existing = [
            s for s in await self.store.list_sources(source_type=SOURCE_TYPE_DISCOVERY)
            if s.url == discovery_source_url(section)
        ]
        if existing:
            return existing[0]
        return await self.store.upsert_source(
            Source(
                url=discovery_source_url(section),
                section=section,
                name=DISCOVERY_SOURCE_NAME,
                type=SOURCE_TYPE_DISCOVERY,
                trust_score=DISCOVERY_TRUST_SCORE,
                enabled=True,
            )
        )

    async def discover_section(self, section: str, now: datetime, stats: Dict) -> Tuple[int, int]:
        """Discover and admit items for one section.

        Returns:
            (added, skipped)
        """
        discovery = self.config.discovery
        source = await self._ensure_source(section)

        interval = timedelta(hours=discovery.run_interval_hours)
        if source.last_fetched_at is not None and now - source.last_fetched_at < interval:
            stats["not_due"] += 1
            return 0, 1

        daily_count = await self.store.count_items(
            ItemQuery(
                since=now - timedelta(days=1),
                field="created_at",
                section=section,
                source_type=SOURCE_TYPE_DISCOVERY,
            )
        )
        if daily_count >= discovery.daily_cap:
            stats["daily_cap"] += 1
            return 0, 1

        entries = dedup_entries(await self._gather(section, now, stats))
        existing = await self.store.existing_urls(e.url for e in entries)
        entries = [e for e in entries if e.url not in existing]

        scorer = CandidateScorer(self.config.scoring, self.config.sections[section])
        ranked = sorted(
            ((e, scorer.score(e, e.base_trust, now)) for e in entries),
            key=lambda pair: (pair[1], pair[0].published_at),
            reverse=True,
        )

        added = 0
        skipped = 0
        if not ranked:
            stats["no_candidates"] += 1
            skipped += 1
        else:
            limit = min(discovery.per_run_cap, discovery.daily_cap - daily_count)
            for entry, score in pick_per_provider(ranked, limit):
                item = Item(
                    url=entry.url,
                    source_id=source.id,
                    section=section,
                    title=entry.title,
                    summary=entry.snippet or entry.title,
                    topics=extract_topics(section, entry.title, entry.snippet, entry.categories),
                    score=score,
                    published_at=entry.published_at,
                    created_at=now,
                )
                try:
                    await self.store.upsert_item(item)
                except PersistenceConflict:
                    pass
                except PersistenceError as e:
                    console.print(f"[yellow]Could not store {entry.url}: {e}[/yellow]")
                    stats["upsert_errors"] += 1
                    skipped += 1
                    continue
                added += 1
                stats["by_provider"][entry.provider] = stats["by_provider"].get(entry.provider, 0) + 1

        await self.store.update_source(source.id, last_fetched_at=now)
        stats["pruned"] += await enforce_discovery_caps(self.store, section, discovery, now)
        return added, skipped

    async def discover_once(self, now: Optional[datetime] = None) -> RunResult:
        """Run discovery for all due sections."""
        now = now or pendulum.now("UTC")
        stats: Dict = {
            "sections": 0,
            "not_due": 0,
            "daily_cap": 0,
            "no_candidates": 0,
            "upsert_errors": 0,
            "provider_errors": 0,
            "pruned": 0,
            "by_provider": {},
            "stopped_early": False,
        }

        if not self.providers:
            stats["reason"] = "No discovery provider credentials configured"
            if not self.quiet:
                console.print(f"[yellow]{stats['reason']}[/yellow]")
            return RunResult(ok=True, added=0, skipped=0, stats=stats)

        run_id = None
        try:
            run = await self.store.create_run("discover", now)
            run_id = run.id
        except PersistenceError as e:
            console.print(f"[yellow]Could not create run record: {e}[/yellow]")

        added = 0
        skipped = 0
        per_section = {}
        completed = False
        try:
            for section in SECTIONS:
                if section not in self.config.sections:
                    continue
                try:
                    section_added, section_skipped = await self.discover_section(section, now, stats)
                except PersistenceError as e:
                    console.print(f"[yellow]Discovery for {section} failed: {e}[/yellow]")
                    section_added, section_skipped = 0, 1
                stats["sections"] += 1
                added += section_added
                skipped += section_skipped
                per_section[section] = section_added
            completed = True
        finally:
            message = f"added {added}, skipped {skipped}"
            if not completed:
                message = f"Discovery aborted by an unexpected error ({message})"
            await self._finish(run_id, completed, added, skipped, message, stats)

        if not self.quiet:
            table = Table(title="Discovery Summary")
            table.add_column("Section", style="cyan")
            table.add_column("Added", style="green")
            for section, count in per_section.items():
                table.add_row(section, str(count))
            console.print(table)

        return RunResult(ok=True, added=added, skipped=skipped, stats=stats)

    async def _finish(self, run_id: Optional[int], ok: bool, added: int, skipped: int, message: str, stats: Dict) -> None:
        if run_id is None:
            return
        try:
            await self.store.finish_run(
                run_id,
                ok=ok,
                added=added,
                skipped=skipped,
                message=message,
                stats=stats,
                finished_at=pendulum.now("UTC"),
            )
        except PersistenceError as e:
            console.print(f"[yellow]Could not finalize run {run_id}: {e}[/yellow]")


async def discover_once(
    config: ConfigModel,
    store: Store,
    credentials: Dict[str, Optional[str]],
    fetcher: Optional[FeedFetcher] = None,
    now: Optional[datetime] = None,
    quiet: bool = False,
) -> RunResult:
    """Run discovery with providers built from ``credentials``."""
    own_fetcher = fetcher is None
    fetcher = fetcher or FeedFetcher(timeout=config.discovery.request_timeout_seconds)
    try:
        providers = build_providers(fetcher, credentials, config.discovery.youtube)
        pipeline = DiscoveryPipeline(config, store, providers, quiet=quiet)
        return await pipeline.discover_once(now=now)
    finally:
        if own_fetcher:
            await fetcher.close()
