"""
Deadline reminder commands.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Optional

import typer
from rich.table import Table

from ..common import console, err_console, open_app

app = typer.Typer(
    help="Manage deadline reminders",
    no_args_is_help=True,
)

URGENCY_STYLES = {"urgent": "red", "warning": "yellow", "normal": "green"}


@app.command("list")
def list_reminders() -> None:
    """Show configured reminders with days left and urgency."""
    from tenderwatch.core.normalize.dates import utcnow
    from tenderwatch.core.reminders import days_until, urgency_of
    from tenderwatch.notify.base import format_deadline

    tw = open_app()
    entries = tw.gateway.read_reminders()
    if not entries:
        console.print("[dim]No reminders set. Add one with:[/dim] tenderwatch reminders set <tender-id> 3 7")
        return

    tenders = tw.gateway.get_tenders(entry.tender_id for entry in entries)
    markers = tw.gateway.read_sent_markers()
    now = utcnow()

    table = Table(title="Reminders", show_header=True, header_style="bold magenta")
    table.add_column("Tender", style="cyan")
    table.add_column("Title")
    table.add_column("Deadline", justify="right")
    table.add_column("Days Left", justify="right")
    table.add_column("Thresholds", justify="right")
    table.add_column("Sent", justify="right")
    table.add_column("Urgency", justify="center")

    for entry in entries:
        tender = tenders.get(entry.tender_id)
        deadline = tender.deadline if tender else None
        urgency = urgency_of(deadline, now)
        style = URGENCY_STYLES[urgency]
        sent = sorted(d for (tid, d) in markers if tid == entry.tender_id)
        table.add_row(
            entry.tender_id,
            (tender.title[:60] if tender else "[dim]unknown[/dim]"),
            format_deadline(deadline),
            str(days_until(deadline, now)) if deadline else "-",
            ", ".join(str(d) for d in entry.thresholds),
            ", ".join(str(d) for d in sent) or "-",
            f"[{style}]{urgency}[/{style}]",
        )

    console.print(table)


@app.command("set")
def set_reminder(
    tender_id: str = typer.Argument(..., help="Tender id, e.g. ted_123456-2026"),
    days: list[int] = typer.Argument(..., help="Days-before-deadline thresholds, e.g. 3 7"),
) -> None:
    """Create or replace the reminder for a tender."""
    tw = open_app()
    if tender_id not in tw.gateway.get_tenders([tender_id]):
        console.print(f"[yellow]Warning:[/yellow] {tender_id} isn't stored yet; the reminder waits for it")

    try:
        entry = tw.reminders.set_reminder(tender_id, days)
    except ValueError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]OK[/green] Reminder for {tender_id} at {', '.join(map(str, entry.thresholds))} days")


@app.command("remove")
def remove_reminder(
    tender_id: str = typer.Argument(..., help="Tender id"),
) -> None:
    """Remove a reminder and forget which thresholds were sent."""
    tw = open_app()
    if not tw.reminders.remove_reminder(tender_id):
        err_console.print(f"[red]No reminder for:[/red] {tender_id}")
        raise typer.Exit(1)
    console.print(f"[green]OK[/green] Reminder for {tender_id} removed")


@app.command("check")
def check_reminders() -> None:
    """Send every due reminder now."""
    tw = open_app()
    sent = asyncio.run(tw.reminders.check_reminders())
    console.print(f"[green]OK[/green] {sent} reminder(s) sent")


@app.command("urgency")
def show_urgency(
    deadline: str = typer.Argument(..., help="Deadline (ISO, DD.MM.YYYY or Norwegian date)"),
    now: Optional[str] = typer.Option(None, "--now", help="Reference time (default: now)"),
) -> None:
    """Classify a deadline as urgent, warning or normal."""
    from tenderwatch.core.normalize.dates import parse_date
    from tenderwatch.core.reminders import urgency_of

    parsed = parse_date(deadline)
    if parsed is None:
        err_console.print(f"[red]Unrecognized date:[/red] {deadline}")
        raise typer.Exit(1)

    reference: datetime | None = None
    if now:
        reference = parse_date(now)
        if reference is None:
            err_console.print(f"[red]Unrecognized date:[/red] {now}")
            raise typer.Exit(1)

    level = urgency_of(parsed, reference)
    style = URGENCY_STYLES[level]
    console.print(f"[{style}]{level}[/{style}]")
