"""
Deadline reminder engine.

Checks stored reminders against tender deadlines and sends each
(tender, threshold) reminder at most once. Scheduled hourly and once a day
at a fixed local time; both jobs run the same idempotent check.
"""

from __future__ import annotations

import asyncio
import math
from datetime import datetime, timedelta
from typing import Iterable, Protocol, Sequence

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ...notify.fanout import NotificationFanout
from ...persistence.gateway import PersistenceFailure, ReminderEntry
from ..config.models import ReminderConfig
from ..logging import get_logger
from ..normalize.canonical import Tender
from ..normalize.dates import ensure_utc, utcnow

logger = get_logger("reminders")

HOURLY_JOB_ID = "reminders-hourly"
DAILY_JOB_ID = "reminders-daily"

URGENT_DAYS = 3
WARNING_DAYS = 7


class StoresReminders(Protocol):
    def read_reminders(self) -> list[ReminderEntry]: ...
    def read_sent_markers(self) -> set[tuple[str, int]]: ...
    def append_sent_marker(self, tender_id: str, threshold_days: int) -> None: ...
    def get_tenders(self, tender_ids: Iterable[str]) -> dict[str, Tender]: ...
    def set_reminder(self, tender_id: str, thresholds: Iterable[int]) -> ReminderEntry: ...
    def remove_reminder(self, tender_id: str) -> bool: ...


def days_until(deadline: datetime, now: datetime) -> int:
    """Whole days left, rounded up (1.2 days -> 2)."""
    return math.ceil((deadline - now) / timedelta(days=1))


def urgency_of(deadline: datetime | None, now: datetime | None = None) -> str:
    """Classify a deadline as ``urgent`` (<= 3 days), ``warning`` (<= 7) or ``normal``."""
    if deadline is None:
        return "normal"
    now = ensure_utc(now) or utcnow()
    days_left = days_until(ensure_utc(deadline), now)
    if days_left <= URGENT_DAYS:
        return "urgent"
    if days_left <= WARNING_DAYS:
        return "warning"
    return "normal"


def due_thresholds(thresholds: Sequence[int], days_left: int, sent: set[int]) -> list[int]:
    """Thresholds that should fire now and haven't fired before."""
    if days_left <= 0:
        return []
    return [d for d in thresholds if days_left <= d and d not in sent]


class ReminderEngine:
    """Sends deadline reminders through the notification fan-out.

    Args:
        gateway: Reminder, marker and tender storage
        fanout: Notification fan-out
        config: Schedule settings
    """

    def __init__(
        self,
        gateway: StoresReminders,
        fanout: NotificationFanout,
        config: ReminderConfig | None = None,
    ):
        self.gateway = gateway
        self.fanout = fanout
        self.config = config or ReminderConfig()
        self._aps: AsyncIOScheduler | None = None
        # Hourly and daily jobs can coincide; checks must not interleave
        self._check_lock = asyncio.Lock()

    def set_reminder(self, tender_id: str, thresholds: Iterable[int]) -> ReminderEntry:
        entry = self.gateway.set_reminder(tender_id, thresholds)
        logger.info(f"Reminder set for {tender_id}: {list(entry.thresholds)} days")
        return entry

    def remove_reminder(self, tender_id: str) -> bool:
        removed = self.gateway.remove_reminder(tender_id)
        if removed:
            logger.info(f"Reminder removed for {tender_id}")
        return removed

    def urgency_of(self, deadline: datetime | None, now: datetime | None = None) -> str:
        return urgency_of(deadline, now)

    async def check_reminders(self, now: datetime | None = None) -> int:
        """Send every due reminder that hasn't been sent yet.

        A marker is written after each send attempt, so a threshold never
        fires twice. Storage errors are logged and end or skip the affected
        part of the check; they never propagate.

        Args:
            now: Reference instant (defaults to the current time)

        Returns:
            Number of reminders sent
        """
        async with self._check_lock:
            return await self._check(ensure_utc(now) or utcnow())

    async def _check(self, now: datetime) -> int:
        try:
            reminders = self.gateway.read_reminders()
            if not reminders:
                logger.debug("No reminders configured")
                return 0
            tenders = self.gateway.get_tenders(r.tender_id for r in reminders)
            markers = self.gateway.read_sent_markers()
        except PersistenceFailure as e:
            logger.error(f"Reminder check skipped, storage unavailable: {e}")
            return 0

        sent_count = 0

        for reminder in reminders:
            tender = tenders.get(reminder.tender_id)
            if tender is None or tender.deadline is None:
                logger.debug(f"No deadline known for {reminder.tender_id}, skipping")
                continue

            days_left = days_until(tender.deadline, now)
            already_sent = {d for (tid, d) in markers if tid == reminder.tender_id}

            for threshold in due_thresholds(reminder.thresholds, days_left, already_sent):
                await self.fanout.notify_reminder(tender, days_left)
                try:
                    self.gateway.append_sent_marker(reminder.tender_id, threshold)
                except PersistenceFailure as e:
                    logger.error(f"Could not record reminder for {reminder.tender_id} (threshold {threshold}): {e}")
                markers.add((reminder.tender_id, threshold))
                sent_count += 1
                logger.info(
                    f"Reminder sent: {days_left} days left (threshold {threshold})",
                    extra={"tender_id": reminder.tender_id},
                )

        if sent_count:
            logger.info(f"Reminders sent: {sent_count}")
        else:
            logger.debug("No reminders due")
        return sent_count

    def start(self, scheduler: AsyncIOScheduler | None = None) -> AsyncIOScheduler:
        """Register the hourly and daily reminder jobs.

        Must be called from a running event loop.
        """
        cfg = self.config
        scheduler = scheduler or AsyncIOScheduler()
        self._aps = scheduler

        if cfg.hourly:
            scheduler.add_job(
                self.check_reminders,
                IntervalTrigger(hours=1),
                id=HOURLY_JOB_ID,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        scheduler.add_job(
            self.check_reminders,
            CronTrigger(hour=cfg.daily_time.hour, minute=cfg.daily_time.minute, timezone=cfg.timezone),
            id=DAILY_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if not scheduler.running:
            scheduler.start()

        logger.info(f"Reminder checks scheduled (daily at {cfg.daily_time:%H:%M} {cfg.timezone})")
        return scheduler

    def stop(self) -> None:
        if self._aps is None:
            return
        for job_id in (HOURLY_JOB_ID, DAILY_JOB_ID):
            if self._aps.get_job(job_id):
                self._aps.remove_job(job_id)
        self._aps = None
