"""Sources management commands."""

import asyncio
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from ..config import Config, SourceConfig, save_sources
from ..errors import FetchError, ParseError
from ..ingestion import FeedFetcher, parse_feed
from ..sections import SECTIONS, to_canonical_section
from .common import get_config, open_store, read_sources, sync_sources

console = Console()
sources_app = typer.Typer(help="Manage RSS sources")


@sources_app.command("list")
def sources_list(
    ctx: typer.Context,
    section: Optional[str] = typer.Option(None, "--section", "-s", help="Only this section"),
) -> None:
    """List all configured sources."""
    config = get_config(ctx)
    sources = read_sources(config)
    if section:
        sources = [s for s in sources if to_canonical_section(s.section) == section]

    if not sources:
        console.print("[yellow]No sources configured.[/yellow]")
        return

    table = Table(title="Configured Sources")
    table.add_column("Name", style="cyan")
    table.add_column("Section", style="magenta")
    table.add_column("Trust", style="green")
    table.add_column("Enabled", style="yellow")
    table.add_column("URL", style="blue")

    for source in sources:
        table.add_row(
            source.name,
            to_canonical_section(source.section),
            str(source.trust_score),
            "✓" if source.enabled else "✗",
            source.url,
        )

    console.print(table)


@sources_app.command("add")
def sources_add(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", "-n", help="Source name"),
    url: str = typer.Option(..., "--url", "-u", help="RSS/Atom feed URL"),
    section: str = typer.Option(..., "--section", "-s", help=f"Section ({', '.join(SECTIONS)})"),
    trust: int = typer.Option(70, "--trust", "-t", help="Trust score (0-100)", min=0, max=100),
    country: Optional[str] = typer.Option(None, "--country", help="ISO country code"),
) -> None:
    """Add a new RSS source."""
    config = get_config(ctx)
    sources = read_sources(config)

    if any(s.url == url for s in sources):
        console.print(f"[red]Source URL already exists: {url}[/red]")
        raise typer.Exit(1)

    sources.append(
        SourceConfig(
            section=to_canonical_section(section),
            name=name,
            url=url,
            country=country,
            trust_score=trust,
            enabled=True,
        )
    )
    save_sources(sources, config.sources_path)
    console.print(f"[green]✅ Added source: {name}[/green]")


@sources_app.command("remove")
def sources_remove(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Source name or URL to remove"),
) -> None:
    """Remove a source from the sources file."""
    config = get_config(ctx)
    sources = read_sources(config)

    remaining = [s for s in sources if s.name != name and s.url != name]
    if len(remaining) == len(sources):
        console.print(f"[red]Source '{name}' not found.[/red]")
        raise typer.Exit(1)

    save_sources(remaining, config.sources_path)
    console.print(f"[green]✅ Removed source: {name}[/green]")


async def _test_sources(config: Config, sources: List[SourceConfig]) -> None:
    settings = config.config.ingest
    async with FeedFetcher(user_agent=settings.user_agent, timeout=settings.request_timeout_seconds) as fetcher:
        for source in sources:
            if not source.enabled:
                console.print(f"[yellow]⚠️  {source.name}: Disabled[/yellow]")
                continue
            try:
                response = await fetcher.fetch(source.url)
                entries = parse_feed(response.content, response.headers.get("content-type"))
                console.print(f"[green]✅ {source.name}: OK ({len(entries)} entries)[/green]")
            except FetchError as e:
                console.print(f"[red]❌ {source.name}: Failed - {e}[/red]")
            except ParseError as e:
                console.print(f"[red]❌ {source.name}: Not a feed - {e}[/red]")


@sources_app.command("test")
def sources_test(
    ctx: typer.Context,
    name: Optional[str] = typer.Argument(None, help="Source name to test (or test all)"),
) -> None:
    """Test feed connectivity and parsing."""
    config = get_config(ctx)
    sources = read_sources(config)

    if name:
        sources = [s for s in sources if s.name == name]
        if not sources:
            console.print(f"[red]Source '{name}' not found.[/red]")
            raise typer.Exit(1)

    asyncio.run(_test_sources(config, sources))


async def _sync(config: Config) -> int:
    async with open_store(config) as store:
        return await sync_sources(store, read_sources(config))


@sources_app.command("sync")
def sources_sync(ctx: typer.Context) -> None:
    """Upsert the sources file into the database."""
    config = get_config(ctx)
    count = asyncio.run(_sync(config))
    console.print(f"[green]✅ Synced {count} sources[/green]")
