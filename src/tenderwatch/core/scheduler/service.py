"""
Scrape scheduler for TenderWatch.

Runs every enabled source adapter in sequence, stores the results, sends
notifications for new tenders and failures, and keeps cumulative run
statistics. APScheduler drives the periodic trigger.
"""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Mapping, Protocol, Sequence
from uuid import uuid4

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ...notify.fanout import NotificationFanout
from ...persistence.gateway import PersistenceFailure
from ..config.models import SchedulerConfig, Source, default_enabled_sources
from ..logging import get_contextual_logger, get_logger
from ..normalize.canonical import Tender
from ..normalize.dates import utcnow
from ..sources.base import FetchOutcome

logger = get_logger("scheduler")

SCRAPE_JOB_ID = "scrape"


class FetchesTenders(Protocol):
    async def fetch(self) -> FetchOutcome: ...


class StoresTenders(Protocol):
    def upsert(self, records: Sequence[Tender]) -> list[Tender]: ...
    def read_enabled_sources(self) -> dict[Source, bool]: ...
    def write_enabled_sources(self, mapping: dict[Source, bool]) -> None: ...


# =============================================================================
# State
# =============================================================================


@dataclass
class SourceRunResult:
    """Outcome of one adapter invocation within a cycle."""

    source: Source
    success: bool
    new_count: int = 0
    total_count: int = 0
    error: str | None = None


@dataclass
class SourceStats:
    runs: int = 0
    new_tenders: int = 0
    last_status: str | None = None
    last_error: str | None = None


@dataclass
class SchedulerState:
    """Process-wide scheduler state; mutated only by :class:`Scheduler`."""

    enabled_sources: dict[Source, bool] = field(default_factory=default_enabled_sources)
    is_running: bool = False
    last_run: datetime | None = None
    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    total_new_tenders: int = 0
    sources: dict[Source, SourceStats] = field(
        default_factory=lambda: {source: SourceStats() for source in Source}
    )


# =============================================================================
# Scheduler
# =============================================================================


class Scheduler:
    """Coordinates scrape cycles across all sources.

    Args:
        adapters: Adapter per source
        gateway: Storage for tenders and source toggles
        fanout: Notification fan-out
        config: Interval and timeout settings
        enabled_sources: Initial toggles (defaults apply for missing sources)
    """

    def __init__(
        self,
        adapters: Mapping[Source, FetchesTenders],
        gateway: StoresTenders,
        fanout: NotificationFanout,
        config: SchedulerConfig | None = None,
        enabled_sources: Mapping[Source, bool] | None = None,
    ):
        self.adapters = dict(adapters)
        self.gateway = gateway
        self.fanout = fanout
        self.config = config or SchedulerConfig()
        self.state = SchedulerState()
        if enabled_sources:
            self.state.enabled_sources.update(enabled_sources)

        self._aps: AsyncIOScheduler | None = None
        self._owns_aps = False

    # -------------------------------------------------------------------------
    # Source toggles
    # -------------------------------------------------------------------------

    def should_run(self, source: Source, source_filter: Source | None = None) -> bool:
        if source_filter is not None:
            return source == source_filter
        return self.state.enabled_sources.get(source, False)

    def set_enabled_sources(self, mapping: Mapping[Source | str, bool]) -> dict[Source, bool]:
        """Merge toggles into the state and persist them.

        Raises:
            ValueError: For an unknown source name
            PersistenceFailure: If the toggles can't be stored
        """
        updates = {Source(source): bool(enabled) for source, enabled in mapping.items()}
        self.state.enabled_sources.update(updates)
        self.gateway.write_enabled_sources(dict(self.state.enabled_sources))
        logger.info(f"Enabled sources: {self._enabled_names()}")
        return dict(self.state.enabled_sources)

    def restore_enabled_sources(self) -> None:
        """Load persisted toggles over the configured ones."""
        stored = self.gateway.read_enabled_sources()
        if stored:
            self.state.enabled_sources.update(stored)
            logger.info(f"Restored source toggles: {self._enabled_names()}")

    def _enabled_names(self) -> str:
        names = [s.value for s, on in self.state.enabled_sources.items() if on]
        return ", ".join(names) or "none"

    # -------------------------------------------------------------------------
    # Run cycle
    # -------------------------------------------------------------------------

    async def trigger(self, source_filter: Source | None = None) -> list[SourceRunResult] | None:
        """Run one scrape cycle.

        A trigger arriving while a cycle is in flight is dropped.

        Args:
            source_filter: Restrict the cycle to this source, regardless of
                its enabled flag

        Returns:
            Per-source results, or None if the trigger was dropped
        """
        if self.state.is_running:
            logger.info("Scrape already running, trigger ignored")
            return None

        self.state.is_running = True
        run_id = uuid4().hex[:8]
        results: list[SourceRunResult] = []

        try:
            for source, adapter in self.adapters.items():
                if not self.should_run(source, source_filter):
                    continue
                results.append(await self._run_source(source, adapter, run_id))
        finally:
            self._record_cycle(results)
            self.state.is_running = False

        return results

    async def _run_source(self, source: Source, adapter: FetchesTenders, run_id: str) -> SourceRunResult:
        log = get_contextual_logger("scheduler", source=source.value, run_id=run_id)
        log.info("Starting source")

        result = await self._fetch_and_store(source, adapter, log)

        stats = self.state.sources.setdefault(source, SourceStats())
        stats.runs += 1
        stats.new_tenders += result.new_count
        stats.last_status = "ok" if result.success else "error"
        stats.last_error = result.error

        if result.success:
            log.info(f"Done: {result.total_count} fetched, {result.new_count} new")
        else:
            log.warning(f"Failed: {result.error}")
            try:
                await self.fanout.notify_error(source, result.error or "unknown error")
            except Exception as e:
                log.exception(f"Error notification failed: {type(e).__name__}: {e}")

        return result

    async def _fetch_and_store(self, source: Source, adapter: FetchesTenders, log) -> SourceRunResult:
        timeout = self.config.source_timeout_seconds
        try:
            outcome = await asyncio.wait_for(adapter.fetch(), timeout=timeout)
        except asyncio.TimeoutError:
            return SourceRunResult(source, success=False, error=f"FetchTimeout: no result after {timeout:g}s")
        except Exception as e:
            log.exception(f"Adapter crashed: {type(e).__name__}: {e}")
            return SourceRunResult(source, success=False, error=f"{type(e).__name__}: {e}")

        if not outcome.success:
            return SourceRunResult(source, success=False, error=outcome.error)

        try:
            new_records = self.gateway.upsert(outcome.records)
        except PersistenceFailure as e:
            return SourceRunResult(
                source,
                success=False,
                total_count=len(outcome.records),
                error=f"PersistenceFailure: {e}",
            )
        except Exception as e:
            log.exception(f"Storing results crashed: {type(e).__name__}: {e}")
            return SourceRunResult(
                source,
                success=False,
                total_count=len(outcome.records),
                error=f"{type(e).__name__}: {e}",
            )

        if new_records:
            try:
                await self.fanout.notify_new(new_records, source)
            except Exception as e:
                # records are stored; a failed announcement doesn't fail the source
                log.exception(f"Announcing new tenders failed: {type(e).__name__}: {e}")

        return SourceRunResult(
            source,
            success=True,
            new_count=len(new_records),
            total_count=len(outcome.records),
        )

    def _record_cycle(self, results: list[SourceRunResult]) -> None:
        state = self.state
        state.last_run = utcnow()
        state.total_runs += 1
        if any(result.success for result in results):
            state.successful_runs += 1
        else:
            state.failed_runs += 1
        state.total_new_tenders += sum(result.new_count for result in results)

    # -------------------------------------------------------------------------
    # Stats
    # -------------------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        """Snapshot of the scheduler state (safe to mutate)."""
        state = self.state
        return {
            "is_running": state.is_running,
            "last_run": state.last_run.isoformat() if state.last_run else None,
            "total_runs": state.total_runs,
            "successful_runs": state.successful_runs,
            "failed_runs": state.failed_runs,
            "total_new_tenders": state.total_new_tenders,
            "enabled_sources": {s.value: on for s, on in state.enabled_sources.items()},
            "sources": {s.value: asdict(stats) for s, stats in state.sources.items()},
        }

    # -------------------------------------------------------------------------
    # Periodic trigger
    # -------------------------------------------------------------------------

    def start(
        self,
        interval_minutes: int | None = None,
        scheduler: AsyncIOScheduler | None = None,
    ) -> AsyncIOScheduler:
        """Schedule :meth:`trigger` every ``interval_minutes``.

        Must be called from a running event loop. When ``run_on_start`` is
        set the first cycle fires immediately.

        Args:
            interval_minutes: Override the configured interval
            scheduler: Shared APScheduler instance (started if not running)

        Returns:
            The APScheduler instance carrying the job
        """
        minutes = interval_minutes or self.config.interval_minutes
        if scheduler is None:
            scheduler = AsyncIOScheduler()
            self._owns_aps = True
        self._aps = scheduler

        job_options: dict[str, Any] = {}
        if self.config.run_on_start:
            job_options["next_run_time"] = datetime.now().astimezone()

        scheduler.add_job(
            self.trigger,
            IntervalTrigger(minutes=minutes),
            id=SCRAPE_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **job_options,
        )
        if not scheduler.running:
            scheduler.start()

        logger.info(f"Scrape scheduled every {minutes} minutes")
        return scheduler

    def stop(self) -> None:
        """Remove the periodic job; shut APScheduler down if we created it."""
        if self._aps is None:
            return
        if self._aps.get_job(SCRAPE_JOB_ID):
            self._aps.remove_job(SCRAPE_JOB_ID)
        if self._owns_aps and self._aps.running:
            self._aps.shutdown(wait=False)
        self._aps = None
        self._owns_aps = False
        logger.info("Scrape schedule stopped")
