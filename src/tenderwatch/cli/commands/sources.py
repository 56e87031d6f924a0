"""
Source listing and enable/disable commands.
"""

from __future__ import annotations

import typer
from rich.table import Table

from ..common import console, err_console, open_app, parse_source

app = typer.Typer(
    help="List and toggle sources",
    no_args_is_help=True,
)


@app.command("list")
def list_sources() -> None:
    """Show every source with its URL, login requirement and toggle."""
    tw = open_app()
    enabled = tw.scheduler.state.enabled_sources

    table = Table(title="Sources", show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Display Name")
    table.add_column("URL")
    table.add_column("Login", justify="center")
    table.add_column("Enabled", justify="center")

    for source, adapter in tw.scheduler.adapters.items():
        on = enabled.get(source, False)
        table.add_row(
            source.value,
            adapter.display_name,
            adapter.url,
            "yes" if adapter.requires_login else "no",
            "[green]yes[/green]" if on else "[red]no[/red]",
        )

    console.print(table)


def _toggle(names: list[str], enabled: bool) -> None:
    from tenderwatch.persistence import PersistenceFailure

    sources = [parse_source(name) for name in names]
    tw = open_app()
    try:
        tw.scheduler.set_enabled_sources({source: enabled for source in sources})
    except PersistenceFailure as e:
        err_console.print(f"[red]Could not save source settings:[/red] {e}")
        raise typer.Exit(1)

    verb = "enabled" if enabled else "disabled"
    for source in sources:
        console.print(f"[green]OK[/green] {source.display_name} {verb}")


@app.command("enable")
def enable_sources(
    names: list[str] = typer.Argument(..., help="Source names (anbud, doffin, ted, mercell)"),
) -> None:
    """Enable one or more sources."""
    _toggle(names, True)


@app.command("disable")
def disable_sources(
    names: list[str] = typer.Argument(..., help="Source names (anbud, doffin, ted, mercell)"),
) -> None:
    """Disable one or more sources."""
    _toggle(names, False)
