"""Orchestrator - component wiring and run entry points."""

from .runner import TenderWatchApp, build_app, run_daemon, run_once

__all__ = [
    "TenderWatchApp",
    "build_app",
    "run_daemon",
    "run_once",
]
