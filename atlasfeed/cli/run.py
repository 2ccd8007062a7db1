"""Ingest, discover and loop commands."""

import asyncio
import time
from typing import Optional

import pendulum
import typer
from rich.console import Console

from ..config import Config
from ..discovery import discover_once
from ..pipeline import RunResult, ingest_once
from .common import get_config, open_store, read_sources

console = Console()


def _print_result(result: RunResult) -> None:
    console.print_json(result.model_dump_json())


async def _ingest(config: Config, dry_run: bool, quiet: bool = False) -> RunResult:
    async with open_store(config, dry_run=dry_run) as store:
        return await ingest_once(
            config.config,
            store,
            seed_sources=read_sources(config),
            quiet=quiet,
        )


async def _discover(config: Config, dry_run: bool) -> RunResult:
    async with open_store(config, dry_run=dry_run) as store:
        return await discover_once(config.config, store, config.get_discovery_credentials())


def ingest_command(
    ctx: typer.Context,
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Run against an in-memory store seeded from sources.yaml",
    ),
) -> None:
    """Fetch feeds, admit the best candidate per section and prune to caps."""
    config = get_config(ctx)
    try:
        result = asyncio.run(_ingest(config, dry_run))
    except KeyboardInterrupt:
        console.print("\n[yellow]Ingest interrupted by user[/yellow]")
        raise typer.Exit(1)

    _print_result(result)
    if result.should_retry:
        raise typer.Exit(1)


def discover_command(
    ctx: typer.Context,
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Run against an in-memory store",
    ),
) -> None:
    """Run multi-provider discovery for every due section."""
    config = get_config(ctx)
    try:
        result = asyncio.run(_discover(config, dry_run))
    except KeyboardInterrupt:
        console.print("\n[yellow]Discovery interrupted by user[/yellow]")
        raise typer.Exit(1)

    _print_result(result)
    if not result.ok:
        raise typer.Exit(1)


def loop_command(
    ctx: typer.Context,
    every: float = typer.Option(60.0, "--every", "-e", help="Minutes between ingest runs", min=0.1),
    max_runs: Optional[int] = typer.Option(None, "--max-runs", help="Stop after this many runs"),
) -> None:
    """Run ingestion repeatedly."""
    config = get_config(ctx)
    runs = 0
    try:
        while max_runs is None or runs < max_runs:
            started = time.monotonic()
            console.print(f"[dim]{pendulum.now().to_datetime_string()} ingest run {runs + 1}[/dim]")
            result = asyncio.run(_ingest(config, dry_run=False, quiet=True))
            console.print(
                f"ok={result.ok} added={result.added} skipped={result.skipped} "
                f"stopped_early={result.stopped_early}"
            )
            runs += 1
            if max_runs is not None and runs >= max_runs:
                break
            time.sleep(max(0.0, every * 60 - (time.monotonic() - started)))
    except KeyboardInterrupt:
        console.print("\n[yellow]Loop stopped[/yellow]")
