"""Main CLI application."""

from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

from ..config import Config
from .init import init_command
from .maintenance import cleanup_command, reset_command
from .run import discover_command, ingest_command, loop_command
from .sources import sources_app

app = typer.Typer(
    name="atlasfeed",
    help="AtlasFeed - feed ingestion, ranking and admission engine",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config.yaml (default: $ATLASFEED_CONFIG or ~/.config/atlasfeed/config.yaml)",
    ),
) -> None:
    """AtlasFeed command line."""
    ctx.obj = Config(config_path)


# Register commands
app.command("init")(init_command)
app.command("ingest")(ingest_command)
app.command("discover")(discover_command)
app.command("loop")(loop_command)
app.command("cleanup")(cleanup_command)
app.command("reset")(reset_command)
app.add_typer(sources_app, name="sources", help="Manage RSS sources")


if __name__ == "__main__":
    app()
