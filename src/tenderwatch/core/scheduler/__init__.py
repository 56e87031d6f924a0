"""Scheduler service - APScheduler integration."""

from .service import Scheduler, SchedulerState, SourceRunResult, SourceStats

__all__ = [
    "Scheduler",
    "SchedulerState",
    "SourceRunResult",
    "SourceStats",
]
