"""Main CLI entry point for modindex."""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from cli import __version__
from cli.commands import scrape
from modindex.config import ScrapeConfig
from modindex.errors import StorageError
from modindex.state import load_state

app = typer.Typer(
    name="modindex",
    help="modindex - Go module index scraper CLI",
    no_args_is_help=True,
)
console = Console()

app.add_typer(scrape.app, name="scrape", help="Scrape the module index")


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold]modindex[/] v{__version__}")


@app.command()
def status(
    db: Path = typer.Option(None, "--db", "-d", help="SQLite database path"),
):
    """Show stored versions, watermark and the last run."""
    db_path = db or ScrapeConfig.from_env().db_path
    try:
        with load_state(db_path) as state:
            stats = state.get_stats()
    except StorageError as e:
        console.print(f"[red]Cannot read state:[/] {e}")
        raise typer.Exit(1)

    table = Table(title="Scraper State")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Database", str(db_path))
    table.add_row("Total Versions", str(stats.total_versions))
    table.add_row("Pre-releases", str(stats.prerelease_versions))
    table.add_row("Gone go.mod", str(stats.gone_versions))
    table.add_row("Watermark", stats.watermark or "-")

    console.print(table)

    last_run = stats.last_run
    if last_run:
        console.print(
            f"\n[dim]Last run: {last_run.get('status', 'unknown')} at "
            f"{last_run.get('started_at', '-')} "
            f"({last_run.get('stored') or 0} stored)[/]"
        )


@app.callback()
def main():
    """modindex CLI - Go module index scraper."""
    pass


if __name__ == "__main__":
    app()
