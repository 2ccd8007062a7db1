"""Helpers shared by CLI commands."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, List

import typer
from rich.console import Console

from ..config import Config, SourceConfig, load_sources
from ..db import MemoryStore, PostgresStore, Store
from ..models import SOURCE_TYPE_RSS, Source
from ..pipeline import RunLimits
from ..sections import to_canonical_section

console = Console()


def get_config(ctx: typer.Context) -> Config:
    """Config manager created by the app callback."""
    config = ctx.obj if isinstance(ctx.obj, Config) else Config()
    try:
        config.config
    except FileNotFoundError as e:
        console.print(f"[red]{e}. Run 'atlasfeed init' first.[/red]")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    return config


def read_sources(config: Config) -> List[SourceConfig]:
    """Sources file contents, or an empty list when it does not exist."""
    try:
        return load_sources(config.sources_path)
    except FileNotFoundError:
        return []


def to_source(source: SourceConfig) -> Source:
    return Source(
        url=source.url,
        section=to_canonical_section(source.section),
        name=source.name,
        type=SOURCE_TYPE_RSS,
        country=source.country,
        trust_score=source.trust_score,
        enabled=source.enabled,
    )


async def sync_sources(store: Store, sources: List[SourceConfig]) -> int:
    """Upsert sources from the sources file into storage."""
    for source in sources:
        await store.upsert_source(to_source(source))
    return len(sources)


@asynccontextmanager
async def open_store(config: Config, dry_run: bool = False) -> AsyncIterator[Store]:
    """Postgres store, or a MemoryStore seeded from the sources file for dry runs."""
    store: Store
    if dry_run:
        store = MemoryStore()
        await sync_sources(store, read_sources(config))
    else:
        limits = RunLimits.from_config(config.config.ingest)
        store = await PostgresStore.connect(config.get_db_config(), max_size=limits.concurrency + 2)
    try:
        yield store
    finally:
        await store.close()
