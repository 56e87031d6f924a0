"""
Scrape commands for running a single cycle.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from rich.table import Table

from ..common import console, open_app, parse_source

app = typer.Typer(
    help="Run scrape cycles",
    no_args_is_help=True,
)


@app.command("run")
def run_scrape(
    source: Optional[str] = typer.Option(
        None,
        "--source",
        "-s",
        help="Scrape only this source (ignores its enabled flag)",
    ),
    show_stats: bool = typer.Option(False, "--stats", help="Print scheduler statistics afterwards"),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
) -> None:
    """Run one scrape cycle over the enabled sources.

    Examples:
        tenderwatch scrape run
        tenderwatch scrape run --source ted
    """
    from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

    from tenderwatch.core.orchestrator import run_once

    source_filter = parse_source(source) if source else None
    tw = open_app(verbose=verbose)

    label = source_filter.display_name if source_filter else "enabled sources"
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(f"[cyan]Scraping {label}...[/cyan]", total=None)
        results = asyncio.run(run_once(tw, source_filter))

    if not results:
        console.print("[yellow]No sources ran. Enable one with:[/yellow] tenderwatch sources enable <name>")
        raise typer.Exit(1)

    table = Table(title="Scrape Summary")
    table.add_column("Source", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Fetched", justify="right")
    table.add_column("New", justify="right", style="green")
    table.add_column("Error", style="red")

    for result in results:
        status = "[green]ok[/green]" if result.success else "[red]error[/red]"
        table.add_row(
            result.source.display_name,
            status,
            str(result.total_count),
            str(result.new_count),
            result.error or "",
        )

    if len(results) > 1:
        table.add_section()
        table.add_row(
            "[bold]Total[/bold]",
            "",
            str(sum(r.total_count for r in results)),
            str(sum(r.new_count for r in results)),
            "",
        )

    console.print(table)

    if show_stats:
        _print_stats(tw.scheduler.get_stats())

    if not any(result.success for result in results):
        raise typer.Exit(1)


def _print_stats(stats: dict) -> None:
    table = Table(title="Scheduler Statistics", show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    for key in ("last_run", "total_runs", "successful_runs", "failed_runs", "total_new_tenders"):
        table.add_row(key, str(stats[key]))
    console.print(table)

    per_source = Table(title="Sources", show_header=True, header_style="bold magenta")
    per_source.add_column("Source", style="cyan")
    per_source.add_column("Enabled", justify="center")
    per_source.add_column("Runs", justify="right")
    per_source.add_column("New", justify="right")
    per_source.add_column("Last Status", justify="center")
    for name, entry in stats["sources"].items():
        per_source.add_row(
            name,
            "yes" if stats["enabled_sources"].get(name) else "no",
            str(entry["runs"]),
            str(entry["new_tenders"]),
            entry["last_status"] or "-",
        )
    console.print(per_source)
