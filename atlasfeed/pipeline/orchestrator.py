"""Ingest orchestrator: fetch, score, admit, fall back and prune."""

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

import pendulum
from rich.console import Console
from rich.panel import Panel

from ..admission import AdmissionCoordinator, prune_sections, sweep_expired
from ..config import ConfigModel, SourceConfig
from ..db import Store
from ..errors import FetchError, ParseError, PersistenceError, RegistryUnavailable
from ..ingestion import Candidate, FallbackProvider, FeedEntry, FeedFetcher, FetchResult, parse_feed
from ..models import SOURCE_TYPE_DISCOVERY, SOURCE_TYPE_FALLBACK, SOURCE_TYPE_RSS, Source
from ..ranking import CandidateScorer, extract_topics
from ..sections import SECTIONS, to_canonical_section
from .deadline import Deadline
from .models import RunResult
from .scheduler import RunLimits, run_pool, select_sources
from .stages import PipelineStage, print_stage_table, timing

console = Console()

FALLBACK_SOURCE_NAME = "GDELT (fallback)"
FALLBACK_TRUST_SCORE = 70


def fallback_source_url(section: str) -> str:
    return f"gdelt:fallback:{section}"


class IngestOrchestrator:
    """Runs one organic ingestion cycle over the source registry."""

    def __init__(
        self,
        config: ConfigModel,
        store: Store,
        fetcher: Optional[FeedFetcher] = None,
        fallback: Optional[FallbackProvider] = None,
        seed_sources: Optional[List[SourceConfig]] = None,
        clock: Optional[Callable[[], float]] = None,
        quiet: bool = False,
    ) -> None:
        """
        Initialize ingest orchestrator.

        Args:
            config: Loaded configuration
            store: Storage backend
            fetcher: HTTP fetcher; built from config when omitted
            fallback: Fallback aggregator client; built on the fetcher when omitted
            seed_sources: Sources to register when the registry holds no RSS rows
            clock: Monotonic clock for the run deadline
            quiet: Suppress the summary table
        """
        self.config = config
        self.store = store
        self.fetcher = fetcher or FeedFetcher(
            user_agent=config.ingest.user_agent,
            timeout=config.ingest.request_timeout_seconds,
        )
        self.fallback = fallback or FallbackProvider(self.fetcher)
        self.seed_sources = seed_sources or []
        self.clock = clock
        self.quiet = quiet
        self.limits = RunLimits.from_config(config.ingest)
        self.scorers = {
            section: CandidateScorer(config.scoring, policy)
            for section, policy in config.sections.items()
        }

    def _new_stats(self) -> Dict:
        return {
            "rss_total": 0,
            "rss_enabled": 0,
            "selected": 0,
            "processed_sources": 0,
            "feeds_parsed": 0,
            "items_seen": 0,
            "candidates_seen": 0,
            "skipped_by_caps": 0,
            "duplicates": 0,
            "fallback_added": 0,
            "revived": 0,
            "seeded": 0,
            "auto_disabled": 0,
            "pruned": 0,
            "expired": 0,
            "stopped_early": False,
            "fast_mode": self.limits.fast_mode,
            "budget_seconds": self.limits.budget_seconds,
        }

    async def _load_registry(self, stats: Dict) -> List[Source]:
        """Read enabled RSS sources, recovering an empty or fully disabled registry.

        Raises:
            RegistryUnavailable: The registry could not be read.
        """
        ingest = self.config.ingest
        try:
            if ingest.revive_disabled_sources:
                stats["revived"] = await self.store.reenable_sources(
                    exclude_source_type=SOURCE_TYPE_DISCOVERY,
                    min_fails=ingest.auto_disable_threshold,
                )

            sources = await self.store.list_sources(source_type=SOURCE_TYPE_RSS, enabled=True)
            if not sources:
                stats["revived"] += await self.store.reenable_sources(source_type=SOURCE_TYPE_RSS)
                if await self.store.count_sources(source_type=SOURCE_TYPE_RSS) == 0:
                    stats["seeded"] = await self._seed_registry()
                sources = await self.store.list_sources(source_type=SOURCE_TYPE_RSS, enabled=True)

            stats["rss_total"] = await self.store.count_sources(source_type=SOURCE_TYPE_RSS)
        except PersistenceError as e:
            raise RegistryUnavailable(f"Cannot read source registry: {e}") from e

        stats["rss_enabled"] = len(sources)
        return sources

    async def _seed_registry(self) -> int:
        count = 0
        for seed in self.seed_sources:
            await self.store.upsert_source(
                Source(
                    url=seed.url,
                    section=to_canonical_section(seed.section),
                    name=seed.name,
                    type=SOURCE_TYPE_RSS,
                    country=seed.country,
                    trust_score=seed.trust_score,
                    enabled=seed.enabled,
                )
            )
            count += 1
        if count:
            console.print(f"[cyan]Seeded {count} sources into an empty registry[/cyan]")
        return count

    def build_candidates(self, source: Source, section: str, entries: List[FeedEntry], now: datetime) -> List[Candidate]:
        """Score fresh entries and keep the source's best ``per_run_cap``."""
        policy = self.config.sections[section]
        max_age_days = self.config.ingest.freshness_max_days.get(section, 60)
        cutoff = now - timedelta(days=max_age_days)
        scorer = self.scorers[section]
        trust = source.trust_score / 100

        candidates = []
        for entry in entries:
            if entry.published_at < cutoff:
                continue
            candidates.append(
                Candidate(
                    title=entry.title,
                    url=entry.url,
                    snippet=entry.snippet,
                    published_at=entry.published_at,
                    section=section,
                    source_id=source.id,
                    country=source.country,
                    topics=extract_topics(section, entry.title, entry.snippet, entry.categories),
                    score=scorer.score(entry, trust, now),
                )
            )

        candidates.sort(key=lambda c: (c.score, c.published_at), reverse=True)
        return candidates[: policy.per_run_cap]

    async def _mark_source(self, source: Source, **fields) -> None:
        try:
            await self.store.update_source(source.id, **fields)
        except PersistenceError as e:
            console.print(f"[yellow]Could not update source {source.name}: {e}[/yellow]")

    async def process_source(self, source: Source, now: datetime, stats: Dict) -> FetchResult:
        """Fetch and parse one source, updating its fetch state."""
        section = to_canonical_section(source.section)
        await self._mark_source(source, last_fetched_at=now, section=section)

        try:
            response = await self.fetcher.fetch(source.url)
            entries = parse_feed(response.content, response.headers.get("content-type"), now=now)
        except (FetchError, ParseError) as e:
            await self._record_failure(source, stats)
            return FetchResult(source_id=source.id, source_name=source.name, success=False, error=str(e))

        await self._mark_source(source, last_ok_at=now, consecutive_fails=0)
        candidates = self.build_candidates(source, section, entries, now)
        return FetchResult(
            source_id=source.id,
            source_name=source.name,
            success=True,
            entries_seen=len(entries),
            candidates=candidates,
        )

    async def _record_failure(self, source: Source, stats: Dict) -> None:
        ingest = self.config.ingest
        try:
            fails = await self.store.record_fetch_failure(source.id)
            if ingest.auto_disable_failing_sources and fails >= ingest.auto_disable_threshold:
                await self.store.update_source(source.id, enabled=False)
                stats["auto_disabled"] += 1
                console.print(f"[yellow]Disabled {source.name} after {fails} consecutive failures[/yellow]")
        except PersistenceError as e:
            console.print(f"[yellow]Could not record failure for {source.name}: {e}[/yellow]")

    async def _run_fallback(
        self,
        coordinator: AdmissionCoordinator,
        deadline: Deadline,
        now: datetime,
        stats: Dict,
    ) -> int:
        """Seed sections with an empty month window from the fallback aggregators."""
        ingest = self.config.ingest
        skipped = 0
        for section in SECTIONS:
            if section not in self.config.sections:
                continue
            if deadline.within_margin(self.limits.safety_margin):
                stats["stopped_early"] = True
                break
            if coordinator.window(section).month_count > 0:
                continue

            try:
                source = await self.store.upsert_source(
                    Source(
                        url=fallback_source_url(section),
                        section=section,
                        name=FALLBACK_SOURCE_NAME,
                        type=SOURCE_TYPE_FALLBACK,
                        trust_score=FALLBACK_TRUST_SCORE,
                        enabled=True,
                    )
                )
            except PersistenceError as e:
                console.print(f"[yellow]Could not register fallback source for {section}: {e}[/yellow]")
                skipped += 1
                continue

            entries = await self.fallback.entries_for(section, limit=ingest.fallback_max_items, now=now)
            candidates = [
                Candidate(
                    title=entry.title,
                    url=entry.url,
                    snippet=entry.snippet or entry.title,
                    published_at=entry.published_at,
                    section=section,
                    source_id=source.id,
                    topics=extract_topics(section, entry.title, entry.snippet),
                    score=ingest.fallback_score,
                )
                for entry in entries
            ]
            outcome = await coordinator.admit(section, candidates, limit=ingest.fallback_max_items)
            stats["fallback_added"] += outcome.added
            stats["skipped_by_caps"] += outcome.skipped_by_caps
            skipped += outcome.skipped
        return skipped

    async def ingest_once(self, now: Optional[datetime] = None) -> RunResult:
        """Run one ingestion cycle.

        Returns:
            RunResult; ``ok`` is False only when the source registry is unreadable
        """
        now = now or pendulum.now("UTC")
        deadline = Deadline(self.limits.budget_seconds, clock=self.clock)
        stats = self._new_stats()
        stages = {
            "registry": PipelineStage("registry", "Loading source registry"),
            "fetch": PipelineStage("fetch", "Fetching feeds"),
            "admission": PipelineStage("admission", "Admitting candidates"),
            "fallback": PipelineStage("fallback", "Fallback aggregators"),
            "prune": PipelineStage("prune", "Pruning to caps"),
        }

        run_id = None
        try:
            run = await self.store.create_run("ingest", now)
            run_id = run.id
        except PersistenceError as e:
            console.print(f"[yellow]Could not create run record: {e}[/yellow]")

        finished = False
        try:
            result = await self._run_cycle(run_id, now, deadline, stats, stages)
            finished = True
            return result
        finally:
            if not finished:
                stats["timing"] = timing(stages)
                await self._finish(run_id, False, 0, 0, "Ingest aborted by an unexpected error", stats)

    async def _run_cycle(
        self,
        run_id: Optional[int],
        now: datetime,
        deadline: Deadline,
        stats: Dict,
        stages: Dict[str, PipelineStage],
    ) -> RunResult:
        added = 0
        skipped = 0

        stage = stages["registry"]
        stage.start()
        try:
            sources = await self._load_registry(stats)
            coordinator = await AdmissionCoordinator.load(
                self.store,
                self.config.sections,
                now=now,
                no_repeat_hours=self.config.ingest.no_repeat_hours,
                cooldown_hours=self.config.ingest.source_cooldown_hours,
                diversity_penalty=self.config.scoring.diversity_penalty,
            )
        except (RegistryUnavailable, PersistenceError) as e:
            stage.fail(str(e))
            console.print(f"[red]Ingest aborted: {e}[/red]")
            stats["timing"] = timing(stages)
            await self._finish(run_id, False, 0, 0, str(e), stats)
            return RunResult(ok=False, added=0, skipped=0, stats=stats)
        stage.complete({"enabled": len(sources)})

        # Fetch
        stage = stages["fetch"]
        stage.start()
        selected = select_sources(sources, self.config.sections, self.limits.max_sources)
        stats["selected"] = len(selected)

        async def worker(source: Source) -> FetchResult:
            return await self.process_source(source, now, stats)

        results, stopped_early = await run_pool(
            selected,
            worker,
            self.limits.concurrency,
            deadline,
            self.limits.safety_margin,
        )
        stats["stopped_early"] = stopped_early

        pools: Dict[str, List[Candidate]] = defaultdict(list)
        for result in results:
            stats["processed_sources"] += 1
            if not result.success:
                skipped += 1
                continue
            stats["feeds_parsed"] += 1
            stats["items_seen"] += result.entries_seen
            stats["candidates_seen"] += len(result.candidates)
            for candidate in result.candidates:
                pools[candidate.section].append(candidate)
        stage.complete({"parsed": stats["feeds_parsed"], "failed": skipped})

        # Admission, once per section over the pooled candidates
        stage = stages["admission"]
        stage.start()
        for section in SECTIONS:
            if section not in pools:
                continue
            outcome = await coordinator.admit(
                section,
                pools[section],
                limit=self.config.ingest.max_admissions_per_section,
            )
            added += outcome.added
            skipped += outcome.skipped
            stats["duplicates"] += outcome.duplicates
            stats["skipped_by_caps"] += outcome.skipped_by_caps
        stage.complete({"added": added})

        # Fallback
        stage = stages["fallback"]
        if self.config.ingest.fallback_enabled:
            stage.start()
            skipped += await self._run_fallback(coordinator, deadline, now, stats)
            added += stats["fallback_added"]
            stage.complete({"added": stats["fallback_added"]})
        else:
            stage.skip("disabled")

        # Prune
        stage = stages["prune"]
        if deadline.remaining() >= self.limits.prune_min_remaining:
            stage.start()
            try:
                pruned = await prune_sections(self.store, self.config.sections, now)
                stats["pruned"] = sum(pruned.values())
                stats["expired"] = await sweep_expired(self.store, self.config.retention.item_retention_days, now)
                stage.complete({"pruned": stats["pruned"], "expired": stats["expired"]})
            except PersistenceError as e:
                stage.fail(str(e))
                console.print(f"[yellow]Pruning failed: {e}[/yellow]")
        else:
            stage.skip("not enough time left")

        stats["timing"] = timing(stages)
        message = f"added {added}, skipped {skipped}"
        if stats["stopped_early"]:
            message += " (stopped early)"
        await self._finish(run_id, True, added, skipped, message, stats)

        if not self.quiet:
            print_stage_table("Ingest Summary", stages)
            console.print(
                Panel(
                    f"Added: {added} | Skipped: {skipped} | Selected: {stats['selected']} | "
                    f"Stopped early: {stats['stopped_early']}",
                    style="green" if added else "yellow",
                )
            )

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


async def ingest_once(
    config: ConfigModel,
    store: Store,
    fetcher: Optional[FeedFetcher] = None,
    seed_sources: Optional[List[SourceConfig]] = None,
    now: Optional[datetime] = None,
    quiet: bool = False,
) -> RunResult:
    """Run one ingestion cycle with a fresh orchestrator."""
    orchestrator = IngestOrchestrator(config, store, fetcher=fetcher, seed_sources=seed_sources, quiet=quiet)
    try:
        return await orchestrator.ingest_once(now=now)
    finally:
        if fetcher is None:
            await orchestrator.fetcher.close()
