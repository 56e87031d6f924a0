"""
Helpers shared by CLI commands: config loading, logging and app wiring.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console

from tenderwatch.core.config import AppConfig, ConfigError, Source, load_app_config

if TYPE_CHECKING:
    from tenderwatch.core.orchestrator import TenderWatchApp

console = Console()
err_console = Console(stderr=True)

# Set by the root callback (--config)
state: dict[str, Path | None] = {"config_path": None}


def get_config() -> AppConfig:
    """Load app config or exit with a readable error."""
    try:
        return load_app_config(state["config_path"])
    except ConfigError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        if e.details:
            err_console.print(f"[dim]{e.details}[/dim]")
        raise typer.Exit(1)


def configure_logging(config: AppConfig, verbose: bool = False) -> None:
    from tenderwatch.core.logging import setup_logging

    config.ensure_directories()
    setup_logging(
        level="DEBUG" if verbose else config.logging.level,
        log_file=config.logging.file,
        json_format=config.logging.json_format,
        rich_console=config.logging.rich_console,
    )


def open_app(verbose: bool = False) -> TenderWatchApp:
    """Load config, set up logging and wire all components."""
    from tenderwatch.core.orchestrator import build_app
    from tenderwatch.persistence import PersistenceFailure

    config = get_config()
    configure_logging(config, verbose=verbose)
    try:
        return build_app(config)
    except PersistenceFailure as e:
        err_console.print(f"[red]Database error:[/red] {e}")
        raise typer.Exit(1)


def parse_source(value: str) -> Source:
    try:
        return Source(value.strip().lower())
    except ValueError:
        choices = ", ".join(s.value for s in Source)
        raise typer.BadParameter(f"Unknown source '{value}' (choose from: {choices})")
