"""
Notification fan-out.

Delivers each event to every enabled channel independently: one channel
failing is logged and never stops the others.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Sequence

from ..core.config.models import NotificationConfig, Source
from ..core.logging import get_logger
from ..core.normalize.canonical import Tender
from .base import NotificationChannel, NotificationChannelFailure
from .mail import EmailChannel
from .telegram_bot import TelegramChannel

logger = get_logger("notify.fanout")


class NotificationFanout:
    """Sends notifications through a set of channels."""

    def __init__(self, channels: Sequence[NotificationChannel] | None = None):
        self.channels = list(channels or [])

    @classmethod
    def from_config(cls, config: NotificationConfig) -> "NotificationFanout":
        return cls([
            EmailChannel(config.email, dashboard_url=config.dashboard_url),
            TelegramChannel(config.telegram, dashboard_url=config.dashboard_url),
        ])

    @property
    def enabled_channels(self) -> list[NotificationChannel]:
        return [channel for channel in self.channels if channel.enabled]

    async def _deliver(
        self,
        channels: Sequence[NotificationChannel],
        event: str,
        send: Callable[[NotificationChannel], Awaitable[None]],
    ) -> int:
        delivered = 0
        for channel in channels:
            try:
                await send(channel)
            except NotificationChannelFailure as e:
                logger.warning(f"{event} not delivered: {e}", extra={"channel": channel.name})
                continue
            except Exception as e:
                logger.exception(
                    f"{event} failed on {channel.name}: {type(e).__name__}: {e}",
                    extra={"channel": channel.name},
                )
                continue
            delivered += 1
        return delivered

    async def notify_new(self, records: Sequence[Tender], source: Source) -> int:
        """Announce newly found tenders.

        Returns:
            Number of channels that delivered
        """
        if not records:
            return 0
        return await self._deliver(
            self.enabled_channels,
            f"New-tender notice ({len(records)} from {source.value})",
            lambda channel: channel.send_new(records, source),
        )

    async def notify_error(self, source: Source, message: str) -> int:
        """Report a failed scrape on channels that opted in to errors."""
        channels = [c for c in self.enabled_channels if c.notify_errors]
        return await self._deliver(
            channels,
            f"Error notice for {source.value}",
            lambda channel: channel.send_error(source, message),
        )

    async def notify_reminder(self, tender: Tender, days_left: int) -> int:
        return await self._deliver(
            self.enabled_channels,
            f"Reminder for {tender.id}",
            lambda channel: channel.send_reminder(tender, days_left),
        )
