"""
Database management commands.
"""

from __future__ import annotations

import typer

from ..common import console, get_config

app = typer.Typer(
    help="Database operations",
    no_args_is_help=True,
)


@app.command("init")
def init_database(
    drop_existing: bool = typer.Option(
        False,
        "--drop",
        help="Drop existing tables before creating",
    ),
) -> None:
    """Initialize the database schema.

    Creates all tables. Use --drop to reset the database.
    """
    from tenderwatch.persistence.db import drop_db, init_db

    config = get_config()
    config.ensure_directories()

    if drop_existing:
        if not typer.confirm("This will DELETE ALL DATA. Continue?", default=False):
            raise typer.Abort()

        console.print("[yellow]Dropping existing tables...[/yellow]")
        drop_db(config.database.url)

    console.print("Creating database schema...")
    init_db(config.database.url)

    console.print("[green]OK[/green] Database initialized")
