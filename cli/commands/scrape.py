"""Scrape commands."""

from dataclasses import replace
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from modindex.config import ScrapeConfig
from modindex.errors import ScrapeError

app = typer.Typer(help="Scrape the module index")
console = Console()


@app.callback(invoke_without_command=True)
def scrape(
    ctx: typer.Context,
    db: Path = typer.Option(
        None,
        "--db",
        "-d",
        help="SQLite database path (default: data/gomodindex.sqlite)",
    ),
    workers: int = typer.Option(
        None,
        "--workers",
        "-w",
        min=1,
        help="Number of concurrent go.mod fetchers",
    ),
    batch_size: int = typer.Option(
        None,
        "--batch-size",
        "-b",
        min=1,
        help="Rows per committed transaction",
    ),
    delay: float = typer.Option(
        None,
        "--delay",
        min=0.0,
        help="Seconds to wait between index pages",
    ),
    no_manifests: bool = typer.Option(
        False,
        "--no-manifests",
        help="Skip go.mod fetching, store index metadata only",
    ),
):
    """Scrape new module versions into the database.

    Resumes from the newest stored timestamp. Any error aborts the run;
    committed batches are kept and the next run picks up from there.

    Examples:
        modindex scrape                   # Resume scraping
        modindex scrape --no-manifests    # Index metadata only
        modindex scrape -w 20 --delay 1   # Gentler on the services
    """
    if ctx.invoked_subcommand is not None:
        return

    from modindex.runner import run

    config = ScrapeConfig.from_env()
    overrides = {
        "db_path": db,
        "pool_size": workers,
        "commit_batch_size": batch_size,
        "scrape_delay": delay,
    }
    config = replace(config, **{k: v for k, v in overrides.items() if v is not None})
    if no_manifests:
        config = replace(config, fetch_manifests=False)

    console.print(
        Panel(
            f"[bold]Module Index Scrape[/]\n\n"
            f"Database: [cyan]{config.db_path}[/]\n"
            f"Workers: {config.pool_size}, batch size: {config.commit_batch_size}\n"
            f"go.mod fetching: {'on' if config.fetch_manifests else 'off'}",
            title="modindex",
        )
    )

    try:
        result = run(config)
    except ScrapeError as e:
        console.print(f"[red]Scrape failed:[/] {e}")
        raise typer.Exit(1)

    console.print("\n[bold green]Scrape completed![/]\n")

    table = Table(title="Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Started From", result.start_cursor.isoformat())
    table.add_row("Ended At", result.end_cursor.isoformat())
    table.add_row("Index Pages", str(result.pages))
    table.add_row("Fetched", str(result.fetched))
    table.add_row("New Versions", str(result.inserted))
    table.add_row("Commits", str(result.commits))
    table.add_row("Time", f"{result.elapsed_seconds:.1f}s")

    console.print(table)
