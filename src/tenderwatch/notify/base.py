"""
Notification channel base class and shared rendering helpers.

A channel renders its own summary of a batch of tenders and delivers it
over one transport. Transport failures are raised as
:class:`NotificationChannelFailure` so the fan-out can log them and carry
on with the other channels.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import ClassVar, Sequence, TypeVar

from ..core.config.models import Source
from ..core.normalize.canonical import Tender
from ..core.normalize.dates import OSLO

T = TypeVar("T")

MISSING = "N/A"


class NotificationChannelFailure(Exception):
    """A channel could not deliver a message."""

    def __init__(self, channel: str, message: str, cause: Exception | None = None):
        self.channel = channel
        self.cause = cause
        super().__init__(f"[{channel}] {message}")


# =============================================================================
# Rendering Helpers
# =============================================================================


def take_first(items: Sequence[T], limit: int) -> tuple[list[T], int]:
    """Split a batch into the first ``limit`` items and the leftover count."""
    shown = list(items[:limit])
    return shown, max(0, len(items) - len(shown))


def more_note(remaining: int, noun: str = "tenders") -> str:
    if remaining <= 0:
        return ""
    return f"... and {remaining} more {noun}"


def format_deadline(value: datetime | None) -> str:
    """Deadline in Oslo local time, or ``N/A``."""
    if value is None:
        return MISSING
    return value.astimezone(OSLO).strftime("%d.%m.%Y %H:%M")


def days_word(days: int) -> str:
    return "day" if days == 1 else "days"


def source_name(source: Source | str) -> str:
    try:
        return Source(source).display_name
    except ValueError:
        return str(source)


# =============================================================================
# Channel Base
# =============================================================================


class NotificationChannel(ABC):
    """One independently toggled delivery channel.

    Attributes:
        name: Channel identifier used in logs
        max_items: Records listed before the "... and N more" note
        notify_errors: Whether scrape errors are sent on this channel
    """

    name: ClassVar[str] = "channel"

    def __init__(
        self,
        enabled: bool = True,
        max_items: int = 5,
        notify_errors: bool = False,
        dashboard_url: str | None = None,
    ):
        self.enabled = enabled
        self.max_items = max_items
        self.notify_errors = notify_errors
        self.dashboard_url = dashboard_url

    @abstractmethod
    async def send_new(self, records: Sequence[Tender], source: Source) -> None:
        """Deliver a summary of newly found tenders.

        Raises:
            NotificationChannelFailure: If delivery fails
        """
        pass

    @abstractmethod
    async def send_error(self, source: Source, message: str) -> None:
        pass

    @abstractmethod
    async def send_reminder(self, tender: Tender, days_left: int) -> None:
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(enabled={self.enabled}, max_items={self.max_items})>"
