"""Tests for the Anbud Direkte adapter."""

from datetime import datetime

import pytest

from tenderwatch.core.backends.playwright_backend import BrowserError
from tenderwatch.core.config.models import AnbudConfig, Source
from tenderwatch.core.normalize.dates import OSLO
from tenderwatch.core.sources.anbud import (
    AnbudAdapter,
    AnbudDetail,
    AnbudListing,
    build_tender,
    parse_detail_page,
    parse_listing_table,
)

from conftest import FakeBrowser

BASE = "https://www.anbuddirekte.no"


class DetachingBrowser(FakeBrowser):
    """Browser whose page content read fails on one URL."""

    def __init__(self, broken_url: str, **kwargs):
        super().__init__(**kwargs)
        self.broken_url = broken_url

    async def get_page_content(self) -> str:
        if self._current == self.broken_url:
            raise BrowserError("Could not read page content", url=self.broken_url)
        return await super().get_page_content()


def _row(title: str, href: str, buyer: str, published: str, deadline: str) -> str:
    return (
        '<tr class="GridItem">'
        "<td></td><td></td><td></td>"
        f"<td>{published}</td>"
        f'<td><a href="{href}">{title}</a></td>'
        f"<td>{buyer}</td>"
        f"<td>{deadline}</td>"
        "</tr>"
    )


LISTING_HTML = f"""
<html><body>
<table id="ctl00_ContentPlaceHolder1_grdAlerts">
  <tr class="GridHeader"><th>a</th><th>b</th><th>c</th><th>Publisert</th><th>Tittel</th><th>Oppdragsgiver</th><th>Frist</th></tr>
  {_row("Maling av Nordby skole", "/Members/Tenders/Detail.aspx?id=1", "Ås kommune", "05.01.2026", "19.01.2026")}
  <tr class="GridAltItem"><td>pager</td></tr>
  {_row("Nytt tak på idrettshall", "/Members/Tenders/Detail.aspx?id=2", "Viken fylke", "06.01.2026", "20. februar 2026")}
  <tr class="GridItem"><td>too</td><td>short</td></tr>
</table>
</body></html>
"""

DETAIL_HTML = """
<html><body>
<div class="ShortDescription">Utvendig maling av skolebygg, ca. 800 m2.</div>
<table>
  <tr><td>Innleveringsfrist:</td><td>onsdag 21. januar 2026 kl. 12:00</td></tr>
  <tr><td>Publiseringsdato:</td><td>05.01.2026</td></tr>
  <tr><td>ID:</td><td>NOR123456-2026</td></tr>
  <tr><td>Dokumenttype:</td><td>Kunngjøring av konkurranse</td></tr>
</table>
</body></html>
"""


class TestParseListingTable:
    """Tests for the result grid parser."""

    def test_reads_data_rows_only(self):
        listings = parse_listing_table(LISTING_HTML, BASE)

        assert [listing.title for listing in listings] == ["Maling av Nordby skole", "Nytt tak på idrettshall"]

    def test_columns_and_absolute_links(self):
        first = parse_listing_table(LISTING_HTML, BASE)[0]

        assert first.link == f"{BASE}/Members/Tenders/Detail.aspx?id=1"
        assert first.buyer == "Ås kommune"
        assert first.published_raw == "05.01.2026"
        assert first.deadline_raw == "19.01.2026"

    def test_missing_table(self):
        assert parse_listing_table("<html><body><p>Ingen treff</p></body></html>", BASE) == []


class TestParseDetailPage:
    """Tests for detail label extraction."""

    def test_extracts_labels(self):
        detail = parse_detail_page(DETAIL_HTML)

        assert detail.tender_id == "NOR123456-2026"
        assert detail.category == "Kunngjøring av konkurranse"
        assert detail.deadline_raw == "onsdag 21. januar 2026 kl. 12:00"
        assert detail.published_raw == "05.01.2026"
        assert detail.description.startswith("Utvendig maling")

    def test_empty_page(self):
        detail = parse_detail_page("<html><body><p>Ikke funnet</p></body></html>")
        assert detail == AnbudDetail()


class TestBuildTender:
    """Tests for merging list and detail data."""

    def _listing(self) -> AnbudListing:
        return AnbudListing(
            title="Maling av Nordby skole",
            link=f"{BASE}/x",
            buyer="Ås kommune",
            published_raw="05.01.2026",
            deadline_raw="19.01.2026",
        )

    def test_detail_wins(self):
        tender = build_tender(self._listing(), parse_detail_page(DETAIL_HTML))

        assert tender.id == "NOR123456-2026"
        assert tender.id_is_stable
        assert tender.deadline == datetime(2026, 1, 21, 12, 0, tzinfo=OSLO)
        assert tender.category == "Kunngjøring av konkurranse"

    def test_list_data_only(self):
        tender = build_tender(self._listing())

        assert tender.source == Source.ANBUD
        assert not tender.id_is_stable
        assert tender.id.startswith("anbud_")
        assert tender.deadline == datetime(2026, 1, 19, tzinfo=OSLO)
        assert tender.description == "Innkjøper: Ås kommune"

    def test_unparsable_deadline_is_none(self):
        listing = self._listing()
        listing.deadline_raw = "Se dokumenter"
        assert build_tender(listing).deadline is None


class TestAnbudAdapter:
    """Tests for the login and scrape flow."""

    def _config(self, **overrides) -> AnbudConfig:
        return AnbudConfig(username="user@example.no", password="secret", **overrides)

    def _pages(self) -> dict[str, str]:
        config = self._config()
        return {
            config.listing_url: LISTING_HTML,
            f"{BASE}/Members/Tenders/Detail.aspx?id=1": DETAIL_HTML,
            f"{BASE}/Members/Tenders/Detail.aspx?id=2": "<html><body></body></html>",
        }

    @pytest.mark.asyncio
    async def test_successful_scrape(self):
        browser = FakeBrowser(pages=self._pages())
        adapter = AnbudAdapter(self._config(), browser_factory=lambda: browser)

        outcome = await adapter.fetch()

        assert outcome.success
        assert [t.title for t in outcome.records] == ["Maling av Nordby skole", "Nytt tak på idrettshall"]
        assert outcome.records[0].id == "NOR123456-2026"
        assert outcome.records[1].deadline == datetime(2026, 2, 20, tzinfo=OSLO)
        assert browser.filled["#ctl00_ContentPlaceHolder1_txtEmail"] == "user@example.no"
        assert browser.closed

    @pytest.mark.asyncio
    async def test_detail_cap_keeps_list_data(self):
        browser = FakeBrowser(pages=self._pages())
        adapter = AnbudAdapter(self._config(detail_limit=1), browser_factory=lambda: browser)

        outcome = await adapter.fetch()

        assert len(outcome.records) == 2
        assert f"{BASE}/Members/Tenders/Detail.aspx?id=2" not in browser.visited
        assert not outcome.records[1].id_is_stable

    @pytest.mark.asyncio
    async def test_failed_detail_keeps_list_data(self):
        detail_url = f"{BASE}/Members/Tenders/Detail.aspx?id=1"
        browser = FakeBrowser(pages=self._pages(), failing_urls={detail_url})
        adapter = AnbudAdapter(self._config(), browser_factory=lambda: browser)

        outcome = await adapter.fetch()

        assert outcome.success
        assert outcome.records[0].title == "Maling av Nordby skole"
        assert outcome.records[0].deadline == datetime(2026, 1, 19, tzinfo=OSLO)

    @pytest.mark.asyncio
    async def test_unreadable_detail_keeps_list_data(self):
        detail_url = f"{BASE}/Members/Tenders/Detail.aspx?id=1"
        browser = DetachingBrowser(detail_url, pages=self._pages())
        adapter = AnbudAdapter(self._config(), browser_factory=lambda: browser)

        outcome = await adapter.fetch()

        assert outcome.success
        assert len(outcome.records) == 2
        assert not outcome.records[0].id_is_stable
        assert outcome.records[1].deadline == datetime(2026, 2, 20, tzinfo=OSLO)

    @pytest.mark.asyncio
    async def test_login_rejected(self):
        browser = FakeBrowser(pages=self._pages(), body_text="Feil brukernavn eller passord")
        adapter = AnbudAdapter(self._config(), browser_factory=lambda: browser)

        outcome = await adapter.fetch()

        assert not outcome.success
        assert outcome.records == []
        assert outcome.error.startswith("AuthenticationFailure")
        assert browser.closed

    @pytest.mark.asyncio
    async def test_missing_login_form(self):
        browser = FakeBrowser(login_form=False)
        adapter = AnbudAdapter(self._config(), browser_factory=lambda: browser)

        outcome = await adapter.fetch()

        assert not outcome.success
        assert "Login form not found" in outcome.error

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        adapter = AnbudAdapter(AnbudConfig(), browser_factory=FakeBrowser)

        outcome = await adapter.fetch()

        assert not outcome.success
        assert outcome.error.startswith("AuthenticationFailure")
