"""
Telegram bot channel.

Sends HTML-formatted messages to a single chat with python-telegram-bot.
"""

from __future__ import annotations

from html import escape
from typing import Any, Sequence

from telegram import Bot
from telegram.constants import ParseMode
from telegram.error import TelegramError

from ..core.config.models import Source, TelegramConfig
from ..core.logging import get_logger
from ..core.normalize.canonical import Tender
from .base import (
    MISSING,
    NotificationChannel,
    NotificationChannelFailure,
    days_word,
    format_deadline,
    more_note,
    source_name,
    take_first,
)

logger = get_logger("notify.telegram")

TITLE_LIMIT = 80


def short_title(title: str, limit: int = TITLE_LIMIT) -> str:
    if len(title) <= limit:
        return title
    return title[:limit] + "..."


def render_new_message(
    records: Sequence[Tender],
    source: Source,
    max_items: int,
    dashboard_url: str | None = None,
) -> str:
    shown, remaining = take_first(records, max_items)
    lines = [
        f"🔔 <b>New tenders - {escape(source_name(source))}</b>",
        "",
        f"Found: <b>{len(records)}</b> tenders",
    ]
    for i, tender in enumerate(shown, 1):
        lines.append("")
        lines.append(f"{i}. <b>{escape(short_title(tender.title))}</b>")
        lines.append(f"   💰 {escape(tender.price or MISSING)} | 📅 {format_deadline(tender.deadline)}")
        if tender.link:
            lines.append(f"   {escape(tender.link)}")
    if remaining:
        lines.extend(["", more_note(remaining)])
    if dashboard_url:
        lines.extend(["", f'<a href="{escape(dashboard_url)}">Open dashboard</a>'])
    return "\n".join(lines)


def render_reminder_message(tender: Tender, days_left: int) -> str:
    return "\n".join([
        f"⏰ <b>Deadline reminder: {days_left} {days_word(days_left)} left</b>",
        "",
        f"Tender: {escape(tender.title)}",
        f"Days left: {days_left}",
        f"Deadline: {format_deadline(tender.deadline)}",
        f"Link: {escape(tender.link or MISSING)}",
    ])


class TelegramChannel(NotificationChannel):
    """Telegram Bot API channel."""

    name = "telegram"

    def __init__(
        self,
        config: TelegramConfig,
        dashboard_url: str | None = None,
        bot: Any | None = None,
    ):
        super().__init__(
            enabled=config.enabled,
            max_items=config.max_items,
            notify_errors=config.notify_errors,
            dashboard_url=dashboard_url,
        )
        self.config = config
        self._bot = bot

    def _make_bot(self) -> Any:
        if self._bot is not None:
            return self._bot
        if not self.config.bot_token:
            raise NotificationChannelFailure(self.name, "No bot token configured")
        return Bot(token=self.config.bot_token)

    async def send_text(self, text: str) -> None:
        """Send one HTML message to the configured chat.

        Raises:
            NotificationChannelFailure: On missing settings or API errors
        """
        if not self.config.chat_id:
            raise NotificationChannelFailure(self.name, "No chat id configured")

        bot = self._make_bot()
        try:
            async with bot:
                await bot.send_message(
                    chat_id=self.config.chat_id,
                    text=text,
                    parse_mode=ParseMode.HTML,
                )
        except TelegramError as e:
            raise NotificationChannelFailure(self.name, f"Bot API error: {e}", e) from e
        logger.info("Message sent")

    async def send_new(self, records: Sequence[Tender], source: Source) -> None:
        await self.send_text(render_new_message(records, source, self.max_items, self.dashboard_url))

    async def send_error(self, source: Source, message: str) -> None:
        await self.send_text(f"⚠️ Error scraping {escape(source_name(source))}: {escape(message)}")

    async def send_reminder(self, tender: Tender, days_left: int) -> None:
        await self.send_text(render_reminder_message(tender, days_left))
