"""Deadline reminders."""

from .engine import ReminderEngine, days_until, due_thresholds, urgency_of

__all__ = [
    "ReminderEngine",
    "days_until",
    "due_thresholds",
    "urgency_of",
]
