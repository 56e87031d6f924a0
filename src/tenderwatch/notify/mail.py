"""
SMTP e-mail channel.

Builds a multipart (plain text + HTML) message with the standard library
``email`` package and delivers it with ``smtplib`` in a worker thread so
the event loop isn't blocked.
"""

from __future__ import annotations

import asyncio
import smtplib
from email.message import EmailMessage
from html import escape
from typing import Callable, Sequence

from ..core.config.models import EmailConfig, Source
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

logger = get_logger("notify.email")

CARD_STYLE = "margin-bottom: 20px; padding: 15px; border: 1px solid #ddd; border-radius: 8px;"
LINK_STYLE = "color: #667eea;"


def render_new_html(
    records: Sequence[Tender],
    source: Source,
    max_items: int,
    dashboard_url: str | None = None,
) -> str:
    """HTML body listing the first ``max_items`` tenders."""
    name = escape(source_name(source))
    shown, remaining = take_first(records, max_items)

    parts = [
        f"<h2>New tenders - {name}</h2>",
        f"<p>Tenders found: <strong>{len(records)}</strong></p>",
        "<hr>",
    ]
    for tender in shown:
        link = (
            f'<a href="{escape(tender.link)}" style="{LINK_STYLE}">Open tender &rarr;</a>'
            if tender.link
            else ""
        )
        parts.append(
            f'<div style="{CARD_STYLE}">'
            f"<h3>{escape(tender.title)}</h3>"
            f"<p><strong>Buyer:</strong> {escape(tender.buyer or MISSING)}</p>"
            f"<p><strong>Category:</strong> {escape(tender.category or MISSING)}</p>"
            f"<p><strong>Amount:</strong> {escape(tender.price or MISSING)}</p>"
            f"<p><strong>Deadline:</strong> {format_deadline(tender.deadline)}</p>"
            f"{link}</div>"
        )
    if remaining:
        parts.append(f"<p><em>{more_note(remaining)}</em></p>")
    if dashboard_url:
        parts.append(f'<p><a href="{escape(dashboard_url)}" style="{LINK_STYLE}">Open dashboard &rarr;</a></p>')
    return "\n".join(parts)


def render_new_text(records: Sequence[Tender], source: Source, max_items: int) -> str:
    shown, remaining = take_first(records, max_items)
    lines = [f"New tenders - {source_name(source)} ({len(records)})", ""]
    for i, tender in enumerate(shown, 1):
        lines.append(f"{i}. {tender.title}")
        lines.append(f"   Deadline: {format_deadline(tender.deadline)}  {tender.link}".rstrip())
    if remaining:
        lines.extend(["", more_note(remaining)])
    return "\n".join(lines)


class EmailChannel(NotificationChannel):
    """Transactional e-mail over SMTP."""

    name = "email"

    def __init__(
        self,
        config: EmailConfig,
        dashboard_url: str | None = None,
        deliver: Callable[[EmailMessage], None] | None = None,
    ):
        super().__init__(
            enabled=config.enabled,
            max_items=config.max_items,
            notify_errors=config.notify_errors,
            dashboard_url=dashboard_url,
        )
        self.config = config
        self._deliver = deliver or self._deliver_smtp

    @property
    def sender(self) -> str:
        return self.config.sender or self.config.username or "tenderwatch@localhost"

    def build_message(self, subject: str, text: str, html: str | None = None) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = ", ".join(self.config.recipients)
        msg.set_content(text)
        if html:
            msg.add_alternative(html, subtype="html")
        return msg

    def _deliver_smtp(self, msg: EmailMessage) -> None:
        cfg = self.config
        with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=cfg.timeout_seconds) as smtp:
            if cfg.use_tls:
                smtp.starttls()
            if cfg.username and cfg.password:
                smtp.login(cfg.username, cfg.password)
            smtp.send_message(msg)

    async def _send(self, msg: EmailMessage) -> None:
        if not self.config.recipients:
            raise NotificationChannelFailure(self.name, "No recipients configured")
        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationChannelFailure(self.name, f"SMTP delivery failed: {e}", e) from e
        logger.info(f"Sent: {msg['Subject']}")

    async def send_new(self, records: Sequence[Tender], source: Source) -> None:
        subject = f"{len(records)} new tenders from {source_name(source)}"
        msg = self.build_message(
            subject,
            render_new_text(records, source, self.max_items),
            render_new_html(records, source, self.max_items, self.dashboard_url),
        )
        await self._send(msg)

    async def send_error(self, source: Source, message: str) -> None:
        subject = f"Error scraping {source_name(source)}"
        await self._send(self.build_message(subject, message))

    async def send_reminder(self, tender: Tender, days_left: int) -> None:
        subject = f"Deadline reminder: {days_left} {days_word(days_left)} left"
        text = (
            f"Tender: {tender.title}\n"
            f"Days left: {days_left}\n"
            f"Deadline: {format_deadline(tender.deadline)}\n"
            f"Link: {tender.link or MISSING}"
        )
        await self._send(self.build_message(subject, text))
