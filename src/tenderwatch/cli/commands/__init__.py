"""CLI command modules."""

from . import db, reminders, scrape, sources, tenders

__all__ = [
    "db",
    "reminders",
    "scrape",
    "sources",
    "tenders",
]
