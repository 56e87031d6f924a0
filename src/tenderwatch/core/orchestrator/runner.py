"""
Application runner.

Wires configuration into adapters, storage, notifications, the scrape
scheduler and the reminder engine, and provides the one-shot and daemon
entry points used by the CLI.
"""

from __future__ import annotations

import asyncio
import signal
from dataclasses import dataclass

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ...notify.fanout import NotificationFanout
from ...persistence.gateway import SqlGateway
from ..config.models import AppConfig, Source
from ..logging import get_logger
from ..reminders.engine import ReminderEngine
from ..scheduler.service import Scheduler, SourceRunResult
from ..sources import build_adapters

logger = get_logger("runner")


@dataclass
class TenderWatchApp:
    """Fully wired application components."""

    config: AppConfig
    gateway: SqlGateway
    fanout: NotificationFanout
    scheduler: Scheduler
    reminders: ReminderEngine


def build_app(
    config: AppConfig,
    gateway: SqlGateway | None = None,
    fanout: NotificationFanout | None = None,
) -> TenderWatchApp:
    """Build every component from config.

    Persisted source toggles override the configured ones.
    """
    gateway = gateway or SqlGateway.from_url(config.database.url, echo=config.database.echo)
    fanout = fanout or NotificationFanout.from_config(config.notifications)

    scheduler = Scheduler(
        adapters=build_adapters(config),
        gateway=gateway,
        fanout=fanout,
        config=config.scheduler,
        enabled_sources=config.sources.enabled,
    )
    scheduler.restore_enabled_sources()

    reminders = ReminderEngine(gateway, fanout, config.reminders)

    channels = [c.name for c in fanout.enabled_channels] or ["none"]
    logger.info(f"Notification channels: {', '.join(channels)}")
    return TenderWatchApp(config, gateway, fanout, scheduler, reminders)


async def run_once(app: TenderWatchApp, source: Source | None = None) -> list[SourceRunResult]:
    """Run a single scrape cycle."""
    return await app.scheduler.trigger(source) or []


async def run_daemon(app: TenderWatchApp, stop_event: asyncio.Event | None = None) -> None:
    """Run the scrape schedule and reminder checks until stopped.

    Stops on SIGINT/SIGTERM or when ``stop_event`` is set.
    """
    stop_event = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    handled: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops don't support signal handlers
            continue
        handled.append(sig)

    aps = AsyncIOScheduler()
    app.scheduler.start(scheduler=aps)
    if app.config.reminders.enabled:
        app.reminders.start(aps)

    logger.info("TenderWatch running")
    try:
        await stop_event.wait()
    finally:
        app.reminders.stop()
        app.scheduler.stop()
        aps.shutdown(wait=False)
        for sig in handled:
            loop.remove_signal_handler(sig)
        logger.info("TenderWatch stopped")
