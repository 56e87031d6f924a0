"""
TenderWatch CLI - Main entry point.

Monitors Norwegian and EU public tender sources, stores new listings and
sends notifications and deadline reminders.
"""

from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.panel import Panel
from rich.traceback import install as install_rich_traceback

from tenderwatch import __app_name__, __version__

from .common import console, err_console, state

# Load environment variables from .env (if present)
load_dotenv()

# Install rich traceback for better error display
install_rich_traceback(show_locals=False, width=120)

# Force UTF-8 on Windows; Norwegian titles contain æ/ø/å
if sys.platform == "win32":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")
    for stream in (sys.stdout, sys.stderr):
        if hasattr(stream, "reconfigure"):
            stream.reconfigure(encoding="utf-8", errors="replace")

# Create main app
app = typer.Typer(
    name=__app_name__,
    help="Tender monitoring for Anbud, Doffin, TED and Mercell",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to app.yaml (default: configs/app.yaml)",
        envvar="TENDERWATCH_CONFIG",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """TenderWatch - tender monitoring and deadline reminders."""
    state["config_path"] = config


# =============================================================================
# Import and register subcommand modules
# =============================================================================

from .commands import db, reminders, scrape, sources, tenders  # noqa: E402

app.add_typer(scrape.app, name="scrape", help="Run scrape cycles")
app.add_typer(sources.app, name="sources", help="List and toggle sources")
app.add_typer(reminders.app, name="reminders", help="Manage deadline reminders")
app.add_typer(tenders.app, name="tenders", help="Browse and annotate stored tenders")
app.add_typer(db.app, name="db", help="Database operations")


# =============================================================================
# Init Command
# =============================================================================


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing configuration",
    ),
) -> None:
    """Initialize TenderWatch database and configuration.

    Creates required directories, a default configuration file,
    and the database schema.
    """
    from rich.progress import Progress, SpinnerColumn, TextColumn

    from tenderwatch.persistence.db import init_db

    from .common import get_config

    app_config_path = state["config_path"] or Path("configs/app.yaml")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Creating default configuration...", total=None)

        if not app_config_path.exists() or force:
            _create_default_app_config(app_config_path)

        progress.update(task, description="Creating directories...")
        config = get_config()
        config.ensure_directories()

        progress.update(task, description="Initializing database...")
        init_db(config.database.url)

        progress.update(task, description="Done!")

    console.print()
    console.print(Panel.fit(
        "[bold green]OK - TenderWatch initialized successfully![/bold green]\n\n"
        "Created:\n"
        f"  - [cyan]{app_config_path}[/cyan] - Application configuration\n"
        f"  - [cyan]{config.data_dir}/[/cyan] - Database storage\n\n"
        "Next steps:\n"
        "  1. Put credentials and tokens in [yellow].env[/yellow]\n"
        "  2. Run one cycle: [yellow]tenderwatch scrape run --source ted[/yellow]\n"
        "  3. Start the monitor: [yellow]tenderwatch run[/yellow]",
        title="[bold]Initialization Complete[/bold]",
        border_style="green",
    ))


def _create_default_app_config(path: Path) -> None:
    """Create default app.yaml configuration."""
    default_config = """\
# TenderWatch Configuration
# Values like ${VAR:-default} are read from the environment (.env works too)

data_dir: data

database:
  url: sqlite:///data/tenderwatch.db
  echo: false

logging:
  level: INFO
  file: logs/tenderwatch.log
  json_format: true
  rich_console: true

scheduler:
  interval_minutes: 30
  run_on_start: true
  source_timeout_seconds: 600

reminders:
  enabled: true
  hourly: true
  daily_time: "09:00"
  timezone: Europe/Oslo

backend:
  timeout_seconds: 30
  headless: true
  max_retries: 3

sources:
  enabled:
    anbud: true
    doffin: true
    ted: true
    mercell: false
  anbud:
    username: ${ANBUD_USERNAME:-}
    password: ${ANBUD_PASSWORD:-}
    detail_limit: 20
  doffin:
    budget_ceiling_nok: 1000000
  ted:
    country: NOR
    min_publication_date: "20250101"
    limit: 50

notifications:
  dashboard_url: ${DASHBOARD_URL:-}
  email:
    enabled: ${EMAIL_ENABLED:-false}
    smtp_host: ${SMTP_HOST:-localhost}
    smtp_port: ${SMTP_PORT:-587}
    username: ${EMAIL_USER:-}
    password: ${EMAIL_PASSWORD:-}
    recipients: ${EMAIL_RECIPIENT:-}
  telegram:
    enabled: ${TELEGRAM_ENABLED:-false}
    bot_token: ${TELEGRAM_BOT_TOKEN:-}
    chat_id: ${TELEGRAM_CHAT_ID:-}
"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(default_config, encoding="utf-8")


# =============================================================================
# Run Command
# =============================================================================


@app.command("run")
def run_monitor(
    interval: Optional[int] = typer.Option(
        None,
        "--interval",
        "-i",
        min=1,
        help="Minutes between scrape cycles (default from config)",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
) -> None:
    """Run the scrape schedule and reminder checks until interrupted."""
    from tenderwatch.core.orchestrator import run_daemon

    from .common import open_app

    tw = open_app(verbose=verbose)
    if interval:
        tw.scheduler.config = tw.scheduler.config.model_copy(update={"interval_minutes": interval})

    console.print(
        f"[bold]TenderWatch monitoring[/bold] every "
        f"[cyan]{tw.scheduler.config.interval_minutes}[/cyan] min. Press Ctrl+C to stop."
    )
    asyncio.run(run_daemon(tw))


# =============================================================================
# Config Check Command
# =============================================================================


@app.command("check-config")
def check_config(
    path: Optional[Path] = typer.Argument(None, help="Config file (default: configs/app.yaml)"),
) -> None:
    """Validate a configuration file."""
    from tenderwatch.core.config.loader import validate_app_config_file

    path = path or state["config_path"] or Path("configs/app.yaml")
    if not path.exists():
        err_console.print(f"[red]Config file not found:[/red] {path}")
        raise typer.Exit(1)

    errors = validate_app_config_file(path)
    if errors:
        err_console.print(f"[red]{len(errors)} problem(s) in {path}:[/red]")
        for error in errors:
            err_console.print(f"  - {error}")
        raise typer.Exit(1)

    console.print(f"[green]OK[/green] {path} is valid")


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
