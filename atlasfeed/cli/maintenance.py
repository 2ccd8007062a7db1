"""Cleanup and reset commands."""

import asyncio

import pendulum
import typer
from rich.console import Console
from rich.panel import Panel

from ..admission import prune_sections, sweep_expired
from ..config import Config
from ..models import SOURCE_TYPE_DISCOVERY
from .common import get_config, open_store

console = Console()


async def _cleanup(config: Config) -> dict:
    settings = config.config
    now = pendulum.now("UTC")
    async with open_store(config) as store:
        expired = await sweep_expired(store, settings.retention.item_retention_days, now)
        pruned = await prune_sections(store, settings.sections, now)
        revived = await store.reenable_sources(
            exclude_source_type=SOURCE_TYPE_DISCOVERY,
            min_fails=settings.ingest.auto_disable_threshold,
        )
    return {"expired": expired, "pruned": sum(pruned.values()), "revived": revived}


async def _reset(config: Config, include_sources: bool) -> dict:
    async with open_store(config) as store:
        return await store.reset(include_sources=include_sources)


def cleanup_command(ctx: typer.Context) -> None:
    """Delete expired items, trim sections to caps and revive failing sources."""
    config = get_config(ctx)
    result = asyncio.run(_cleanup(config))
    console.print(
        Panel(
            f"Expired: {result['expired']}\nPruned: {result['pruned']}\nRevived sources: {result['revived']}",
            title="Cleanup",
            style="green",
        )
    )


def reset_command(
    ctx: typer.Context,
    all_data: bool = typer.Option(False, "--all", help="Also delete sources"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete items and run records; reset source fetch state."""
    config = get_config(ctx)
    target = "items, runs and sources" if all_data else "items and runs"
    if not yes and not typer.confirm(f"Delete all {target}?"):
        raise typer.Exit(1)

    counts = asyncio.run(_reset(config, all_data))
    console.print(
        f"[green]Deleted {counts['items']} items, {counts['runs']} runs, "
        f"{counts['sources']} sources[/green]"
    )
