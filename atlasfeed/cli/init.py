"""Init command implementation."""

from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.panel import Panel

from ..config import ConfigModel, SourceConfig, save_config, save_sources
from ..db import init_database, validate_connection

console = Console()


def create_default_sources() -> List[SourceConfig]:
    """A small starter registry with at least one feed per section."""
    seeds = [
        ("global", "BBC World", "https://feeds.bbci.co.uk/news/world/rss.xml", "GB", 85),
        ("global", "Al Jazeera", "https://www.aljazeera.com/xml/rss/all.xml", "QA", 80),
        ("tech", "Ars Technica", "https://feeds.arstechnica.com/arstechnica/index", "US", 80),
        ("tech", "The Verge", "https://www.theverge.com/rss/index.xml", "US", 75),
        ("innovators", "IEEE Spectrum", "https://spectrum.ieee.org/feeds/feed.rss", "US", 80),
        ("early", "arXiv cs.AI", "https://rss.arxiv.org/rss/cs.AI", None, 75),
        ("creators", "Smashing Magazine", "https://www.smashingmagazine.com/feed/", None, 70),
        ("universe", "NASA", "https://www.nasa.gov/feed/", "US", 90),
        ("history", "History Today", "https://www.historytoday.com/feed/rss.xml", "GB", 70),
        ("faith", "Yaqeen Institute", "https://yaqeeninstitute.org/feed", "US", 70),
    ]
    return [
        SourceConfig(section=section, name=name, url=url, country=country, trust_score=trust, enabled=True)
        for section, name, url, country, trust in seeds
    ]


def init_command(
    config_dir: Path = typer.Option(
        Path.home() / ".config" / "atlasfeed",
        "--config-dir",
        "-d",
        help="Configuration directory",
    ),
    db_host: str = typer.Option("localhost", "--db-host", help="Postgres host"),
    db_port: int = typer.Option(5432, "--db-port", help="Postgres port"),
    db_name: str = typer.Option("atlasfeed", "--db-name", help="Database name"),
    db_user: str = typer.Option("atlasfeed", "--db-user", help="Database user"),
    seed_sources: bool = typer.Option(
        True,
        "--seed-sources/--no-seed-sources",
        help="Seed a starter set of feeds",
    ),
    skip_db: bool = typer.Option(False, "--skip-db", help="Only write configuration files"),
) -> None:
    """Initialize AtlasFeed configuration and database."""
    console.print(Panel.fit("AtlasFeed - Initialization", style="bold blue"))

    config_dir.mkdir(parents=True, exist_ok=True)
    config_path = config_dir / "config.yaml"
    sources_path = config_dir / "sources.yaml"

    config = ConfigModel(
        postgres={
            "host": db_host,
            "port": db_port,
            "database": db_name,
            "user": db_user,
            "password_env": "ATLASFEED_DB_PASSWORD",
        },
    )

    save_config(config, config_path)
    console.print(f"✅ Created config: {config_path}")

    if seed_sources:
        sources = create_default_sources()
        save_sources(sources, sources_path)
        console.print(f"✅ Created sources: {sources_path} (seeded with {len(sources)} sources)")
    else:
        save_sources([], sources_path)
        console.print(f"✅ Created sources: {sources_path} (empty)")

    if skip_db:
        return

    console.print("\n[bold]Testing database connection...[/bold]")
    db_config = config.postgres.model_dump()

    if not validate_connection(db_config):
        console.print(
            "[red]❌ Database connection failed![/red]\n"
            "Please ensure Postgres is running and credentials are correct.\n"
            "Set the password via environment variable: [bold]export ATLASFEED_DB_PASSWORD=your_password[/bold]"
        )
        raise typer.Exit(1)

    console.print("✅ Database connection successful")

    console.print("\n[bold]Initializing database schema...[/bold]")
    init_database(db_config)
    console.print("✅ Database schema initialized")

    console.print(
        Panel(
            f"[green]✅ AtlasFeed initialized successfully![/green]\n\n"
            f"Configuration: {config_path}\n"
            f"Sources: {sources_path}\n\n"
            f"Next steps:\n"
            f"1. Set database password: [bold]export ATLASFEED_DB_PASSWORD=your_password[/bold]\n"
            f"2. Optionally set GITHUB_TOKEN, YOUTUBE_API_KEY or X_BEARER_TOKEN for discovery\n"
            f"3. Run: [bold]atlasfeed sources sync[/bold] then [bold]atlasfeed ingest[/bold]",
            style="green",
        )
    )
