"""Shared fixtures for TenderWatch tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Sequence

import pytest

from tenderwatch.core.config.models import Source
from tenderwatch.core.normalize.canonical import Tender, fallback_id
from tenderwatch.core.sources.base import FetchOutcome
from tenderwatch.notify.base import NotificationChannel, NotificationChannelFailure
from tenderwatch.notify.fanout import NotificationFanout
from tenderwatch.persistence.gateway import SqlGateway


NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_tender(
    tender_id: str = "NOR123-2026",
    title: str = "Maling av skole",
    source: Source = Source.ANBUD,
    deadline: datetime | None = None,
    stable: bool = True,
    **extra,
) -> Tender:
    return Tender(
        id=tender_id,
        title=title,
        source=source,
        deadline=deadline,
        id_is_stable=stable,
        **extra,
    )


def make_unstable(title: str, source: Source = Source.DOFFIN, **extra) -> Tender:
    return make_tender(fallback_id(source, title), title, source, stable=False, **extra)


# =============================================================================
# Fakes
# =============================================================================


class FakeChannel(NotificationChannel):
    """Records every call; optionally fails."""

    name = "fake"

    def __init__(self, enabled: bool = True, notify_errors: bool = True, fail: bool = False):
        super().__init__(enabled=enabled, max_items=5, notify_errors=notify_errors)
        self.fail = fail
        self.new: list[tuple[list[Tender], Source]] = []
        self.errors: list[tuple[Source, str]] = []
        self.reminders: list[tuple[Tender, int]] = []

    def _maybe_fail(self) -> None:
        if self.fail:
            raise NotificationChannelFailure(self.name, "boom")

    async def send_new(self, records: Sequence[Tender], source: Source) -> None:
        self._maybe_fail()
        self.new.append((list(records), source))

    async def send_error(self, source: Source, message: str) -> None:
        self._maybe_fail()
        self.errors.append((source, message))

    async def send_reminder(self, tender: Tender, days_left: int) -> None:
        self._maybe_fail()
        self.reminders.append((tender, days_left))


class FakeAdapter:
    """Adapter stand-in returning a canned outcome."""

    def __init__(
        self,
        source: Source,
        records: list[Tender] | None = None,
        error: str | None = None,
        raises: Exception | None = None,
        delay: float = 0.0,
    ):
        self.source = source
        self.records = records or []
        self.error = error
        self.raises = raises
        self.delay = delay
        self.calls = 0

    async def fetch(self) -> FetchOutcome:
        import asyncio

        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raises is not None:
            raise self.raises
        return FetchOutcome(source=self.source, records=list(self.records), error=self.error)


class FakeBrowser:
    """Scripted stand-in for PlaywrightBackend.

    ``pages`` maps URL -> HTML served after ``goto``.
    """

    def __init__(
        self,
        pages: dict[str, str] | None = None,
        body_text: str = "Velkommen | Logg ut",
        login_form: bool = True,
        failing_urls: set[str] | None = None,
        cards_render: bool = True,
    ):
        self.pages = pages or {}
        self.body_text = body_text
        self.login_form = login_form
        self.failing_urls = failing_urls or set()
        self.cards_render = cards_render
        self.visited: list[str] = []
        self.filled: dict[str, str] = {}
        self.clicked: list[str] = []
        self.closed = False
        self._current = ""

    async def __aenter__(self) -> "FakeBrowser":
        return self

    async def __aexit__(self, *exc) -> None:
        self.closed = True

    async def goto(self, url: str, wait_until: str = "networkidle", timeout: float | None = None) -> int:
        from tenderwatch.core.backends.base import FetchError

        self.visited.append(url)
        if url in self.failing_urls:
            raise FetchError("navigation failed", url=url)
        self._current = url
        return 200

    async def click_button_with_text(self, words: tuple[str, ...]) -> bool:
        return True

    async def wait_for_selector(self, selector: str, timeout_ms: int | None = None) -> bool:
        if "txtEmail" in selector:
            return self.login_form
        return self.cards_render

    async def fill(self, selector: str, value: str, timeout_ms: int | None = None) -> None:
        self.filled[selector] = value

    async def click(self, selector: str, timeout_ms: int | None = None, optional: bool = False) -> bool:
        self.clicked.append(selector)
        return True

    async def wait_for_load(self, state: str = "networkidle", timeout_ms: int | None = None) -> None:
        return None

    async def get_body_text(self) -> str:
        return self.body_text

    async def get_page_content(self) -> str:
        return self.pages.get(self._current, "<html><body></body></html>")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def gateway() -> SqlGateway:
    """Gateway on a fresh in-memory SQLite database."""
    return SqlGateway.from_url("sqlite://")


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def fanout(channel: FakeChannel) -> NotificationFanout:
    return NotificationFanout([channel])


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def due_in_five_days() -> datetime:
    return NOW + timedelta(days=5)
