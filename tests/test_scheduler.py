"""Tests for the scrape scheduler."""

import asyncio
from datetime import timedelta

import pytest

from tenderwatch.core.config.models import SchedulerConfig, Source
from tenderwatch.core.scheduler import Scheduler
from tenderwatch.persistence.gateway import PersistenceFailure

from conftest import FakeAdapter, make_tender


class BrokenStore:
    """Gateway whose writes always fail."""

    def upsert(self, records):
        raise PersistenceFailure("disk I/O error")

    def read_enabled_sources(self):
        return {}

    def write_enabled_sources(self, mapping):
        raise PersistenceFailure("disk I/O error")


class CrashingStore(BrokenStore):
    """Gateway that fails with an unexpected error."""

    def upsert(self, records):
        raise RuntimeError("cursor already closed")


class CrashingFanout:
    """Fan-out whose new-tender announcement blows up."""

    def __init__(self):
        self.errors = []

    async def notify_new(self, records, source):
        raise RuntimeError("template missing")

    async def notify_error(self, source, message):
        self.errors.append((source, message))


def _scheduler(adapters, gateway, fanout, **config) -> Scheduler:
    return Scheduler(adapters, gateway, fanout, SchedulerConfig(**config))


class TestTrigger:
    """Tests for a single scrape cycle."""

    @pytest.mark.asyncio
    async def test_new_tenders_stored_and_announced(self, gateway, fanout, channel):
        adapter = FakeAdapter(Source.ANBUD, [make_tender("A-1"), make_tender("A-2", "Nytt tak")])
        scheduler = _scheduler({Source.ANBUD: adapter}, gateway, fanout)

        results = await scheduler.trigger()

        assert len(results) == 1
        assert results[0].success
        assert results[0].new_count == 2
        assert len(channel.new) == 1
        assert [t.id for t in channel.new[0][0]] == ["A-1", "A-2"]

    @pytest.mark.asyncio
    async def test_repeat_cycle_is_quiet(self, gateway, fanout, channel):
        adapter = FakeAdapter(Source.ANBUD, [make_tender("A-1")])
        scheduler = _scheduler({Source.ANBUD: adapter}, gateway, fanout)

        await scheduler.trigger()
        results = await scheduler.trigger()

        assert results[0].new_count == 0
        assert results[0].total_count == 1
        assert len(channel.new) == 1

    @pytest.mark.asyncio
    async def test_overlapping_trigger_dropped(self, gateway, fanout):
        adapter = FakeAdapter(Source.TED, [make_tender("ted_1", source=Source.TED)], delay=0.05)
        scheduler = _scheduler({Source.TED: adapter}, gateway, fanout)

        first, second = await asyncio.gather(scheduler.trigger(), scheduler.trigger())

        assert first is not None
        assert second is None
        assert adapter.calls == 1
        assert scheduler.get_stats()["total_runs"] == 1
        assert not scheduler.state.is_running

    @pytest.mark.asyncio
    async def test_failures_are_isolated(self, gateway, fanout, channel):
        adapters = {
            Source.ANBUD: FakeAdapter(Source.ANBUD, error="AuthenticationFailure: Login rejected"),
            Source.DOFFIN: FakeAdapter(Source.DOFFIN, raises=RuntimeError("selector changed")),
            Source.TED: FakeAdapter(Source.TED, [make_tender("ted_1", source=Source.TED)]),
        }
        scheduler = _scheduler(adapters, gateway, fanout)

        results = await scheduler.trigger()

        assert [r.success for r in results] == [False, False, True]
        assert results[1].error == "RuntimeError: selector changed"
        assert [source for source, _ in channel.errors] == [Source.ANBUD, Source.DOFFIN]
        assert channel.errors[0][1] == "AuthenticationFailure: Login rejected"

        stats = scheduler.get_stats()
        assert stats["successful_runs"] == 1
        assert stats["failed_runs"] == 0
        assert stats["sources"]["anbud"]["last_status"] == "error"
        assert stats["sources"]["ted"]["new_tenders"] == 1

    @pytest.mark.asyncio
    async def test_all_sources_failing_counts_failed_run(self, gateway, fanout):
        scheduler = _scheduler({Source.TED: FakeAdapter(Source.TED, error="FetchError: HTTP 500")}, gateway, fanout)

        await scheduler.trigger()

        stats = scheduler.get_stats()
        assert stats["failed_runs"] == 1
        assert stats["successful_runs"] == 0
        assert stats["last_run"] is not None

    @pytest.mark.asyncio
    async def test_timeout(self, gateway, fanout, channel):
        adapter = FakeAdapter(Source.DOFFIN, [make_tender()], delay=1.0)
        config = SchedulerConfig.model_construct(source_timeout_seconds=0.01)
        scheduler = Scheduler({Source.DOFFIN: adapter}, gateway, fanout, config)

        results = await scheduler.trigger()

        assert not results[0].success
        assert results[0].error == "FetchTimeout: no result after 0.01s"
        assert len(channel.errors) == 1

    @pytest.mark.asyncio
    async def test_persistence_failure(self, fanout, channel):
        scheduler = _scheduler({Source.ANBUD: FakeAdapter(Source.ANBUD, [make_tender()])}, BrokenStore(), fanout)

        results = await scheduler.trigger()

        assert not results[0].success
        assert results[0].error.startswith("PersistenceFailure")
        assert channel.new == []

    @pytest.mark.asyncio
    async def test_unexpected_storage_error_isolated(self, fanout, channel):
        anbud = FakeAdapter(Source.ANBUD, [make_tender()])
        ted = FakeAdapter(Source.TED, [make_tender("ted_1", source=Source.TED)])
        scheduler = _scheduler({Source.ANBUD: anbud, Source.TED: ted}, CrashingStore(), fanout)

        results = await scheduler.trigger()

        assert [(r.source, r.success) for r in results] == [(Source.ANBUD, False), (Source.TED, False)]
        assert results[0].error == "RuntimeError: cursor already closed"
        assert ted.calls == 1
        assert not scheduler.state.is_running
        assert len(channel.errors) == 2

    @pytest.mark.asyncio
    async def test_announcement_failure_keeps_source_ok(self, gateway):
        fanout = CrashingFanout()
        adapter = FakeAdapter(Source.ANBUD, [make_tender("A-1")])
        scheduler = _scheduler({Source.ANBUD: adapter}, gateway, fanout)

        results = await scheduler.trigger()

        assert results[0].success
        assert results[0].new_count == 1
        assert fanout.errors == []
        assert gateway.query_by_source_and_id(Source.ANBUD, "A-1") is not None

    @pytest.mark.asyncio
    async def test_disabled_source_skipped(self, gateway, fanout):
        mercell = FakeAdapter(Source.MERCELL)
        ted = FakeAdapter(Source.TED)
        scheduler = _scheduler({Source.MERCELL: mercell, Source.TED: ted}, gateway, fanout)

        results = await scheduler.trigger()

        assert [r.source for r in results] == [Source.TED]
        assert mercell.calls == 0

    @pytest.mark.asyncio
    async def test_source_filter_ignores_toggle(self, gateway, fanout):
        mercell = FakeAdapter(Source.MERCELL, error="UnavailableSource: Mercell requires subscription")
        ted = FakeAdapter(Source.TED)
        scheduler = _scheduler({Source.MERCELL: mercell, Source.TED: ted}, gateway, fanout)

        results = await scheduler.trigger(source_filter=Source.MERCELL)

        assert [r.source for r in results] == [Source.MERCELL]
        assert ted.calls == 0


class TestSourceToggles:
    """Tests for enabling and disabling sources."""

    def test_defaults(self, gateway, fanout):
        scheduler = Scheduler({}, gateway, fanout)
        assert scheduler.get_stats()["enabled_sources"] == {
            "anbud": True,
            "doffin": True,
            "ted": True,
            "mercell": False,
        }

    def test_toggles_persist(self, gateway, fanout):
        Scheduler({}, gateway, fanout).set_enabled_sources({"doffin": False})

        restored = Scheduler({}, gateway, fanout)
        restored.restore_enabled_sources()

        assert not restored.should_run(Source.DOFFIN)
        assert restored.should_run(Source.ANBUD)

    def test_unknown_source(self, gateway, fanout):
        with pytest.raises(ValueError):
            Scheduler({}, gateway, fanout).set_enabled_sources({"kgv": True})

    def test_write_failure_propagates(self, fanout):
        with pytest.raises(PersistenceFailure):
            Scheduler({}, BrokenStore(), fanout).set_enabled_sources({Source.TED: False})


class TestPeriodicJob:
    """Tests for the APScheduler job."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self, gateway, fanout):
        scheduler = _scheduler({}, gateway, fanout, run_on_start=False)

        aps = scheduler.start(interval_minutes=5)
        job = aps.get_job("scrape")

        assert job is not None
        assert job.trigger.interval == timedelta(minutes=5)

        scheduler.stop()

        assert aps.get_job("scrape") is None
        # shutdown is deferred to the event loop in APScheduler 3.11
        await asyncio.sleep(0.01)
        assert not aps.running
