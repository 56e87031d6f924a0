"""
Commands for browsing and annotating stored tenders.
"""

from __future__ import annotations

from typing import Optional

import typer
from rich.table import Table

from ..common import console, err_console, open_app, parse_source

app = typer.Typer(
    help="Browse and annotate stored tenders",
    no_args_is_help=True,
)

PRIORITY_LEVELS = ("low", "medium", "high")


@app.command("list")
def list_tenders(
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Filter by source"),
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Maximum rows"),
) -> None:
    """List the most recently scraped tenders."""
    from tenderwatch.core.reminders import urgency_of
    from tenderwatch.notify.base import format_deadline

    tw = open_app()
    tenders = tw.gateway.list_tenders(parse_source(source) if source else None, limit)
    if not tenders:
        console.print("[dim]No tenders stored yet. Run:[/dim] tenderwatch scrape run")
        return

    table = Table(title="Tenders", show_header=True, header_style="bold magenta")
    table.add_column("Source", style="cyan")
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Buyer")
    table.add_column("Deadline", justify="right")
    table.add_column("Urgency", justify="center")

    for tender in tenders:
        table.add_row(
            tender.source.value,
            tender.id,
            tender.title[:70],
            tender.buyer[:40],
            format_deadline(tender.deadline),
            urgency_of(tender.deadline) if tender.deadline else "-",
        )
    console.print(table)


def _annotate(method: str, source: str, tender_id: str, *args):
    tw = open_app()
    try:
        return getattr(tw.gateway, method)(parse_source(source), tender_id, *args)
    except KeyError:
        err_console.print(f"[red]Tender not found:[/red] {source}/{tender_id}")
        raise typer.Exit(1)


@app.command("favorite")
def favorite(
    source: str = typer.Argument(..., help="Source name"),
    tender_id: str = typer.Argument(..., help="Tender id"),
) -> None:
    """Mark a tender as favorite."""
    added = _annotate("add_favorite", source, tender_id)
    console.print("[green]OK[/green] Added to favorites" if added else "[dim]Already a favorite[/dim]")


@app.command("note")
def add_note(
    source: str = typer.Argument(..., help="Source name"),
    tender_id: str = typer.Argument(..., help="Tender id"),
    text: str = typer.Argument(..., help="Note text"),
) -> None:
    """Attach a note to a tender."""
    _annotate("add_note", source, tender_id, text)
    console.print("[green]OK[/green] Note added")


@app.command("tag")
def add_tag(
    source: str = typer.Argument(..., help="Source name"),
    tender_id: str = typer.Argument(..., help="Tender id"),
    name: str = typer.Argument(..., help="Tag"),
) -> None:
    """Tag a tender."""
    added = _annotate("add_tag", source, tender_id, name)
    console.print("[green]OK[/green] Tag added" if added else "[dim]Tag already present[/dim]")


@app.command("priority")
def set_priority(
    source: str = typer.Argument(..., help="Source name"),
    tender_id: str = typer.Argument(..., help="Tender id"),
    level: str = typer.Argument(..., help="low, medium or high"),
) -> None:
    """Set a tender's priority."""
    if level not in PRIORITY_LEVELS:
        raise typer.BadParameter(f"Priority must be one of: {', '.join(PRIORITY_LEVELS)}")
    _annotate("set_priority", source, tender_id, level)
    console.print(f"[green]OK[/green] Priority set to {level}")


@app.command("show")
def show_tender(
    source: str = typer.Argument(..., help="Source name"),
    tender_id: str = typer.Argument(..., help="Tender id"),
) -> None:
    """Show a stored tender with its annotations."""
    from rich.panel import Panel

    from tenderwatch.notify.base import format_deadline

    tw = open_app()
    src = parse_source(source)
    tender = tw.gateway.query_by_source_and_id(src, tender_id)
    if tender is None:
        err_console.print(f"[red]Tender not found:[/red] {source}/{tender_id}")
        raise typer.Exit(1)
    annotations = tw.gateway.get_annotations(src, tender_id)

    lines = [
        f"[bold]{tender.title}[/bold]",
        "",
        f"Buyer: {tender.buyer or '-'}",
        f"Category: {tender.category or '-'}",
        f"Location: {tender.location or '-'}",
        f"Amount: {tender.price or '-'}",
        f"Published: {format_deadline(tender.published_at)}",
        f"Deadline: {format_deadline(tender.deadline)}",
        f"Link: {tender.link or '-'}",
        "",
        f"Favorite: {'yes' if annotations['favorite'] else 'no'}",
        f"Priority: {annotations['priority'] or '-'}",
        f"Tags: {', '.join(annotations['tags']) or '-'}",
    ]
    for note in annotations["notes"]:
        lines.append(f"Note: {note}")

    console.print(Panel("\n".join(lines), title=f"{tender.source.display_name} {tender.id}", border_style="cyan"))
