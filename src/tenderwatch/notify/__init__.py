"""Notification channels and fan-out."""

from .base import NotificationChannel, NotificationChannelFailure
from .fanout import NotificationFanout
from .mail import EmailChannel
from .telegram_bot import TelegramChannel

__all__ = [
    "EmailChannel",
    "NotificationChannel",
    "NotificationChannelFailure",
    "NotificationFanout",
    "TelegramChannel",
]
