"""Tests for the Doffin adapter."""

from datetime import datetime

import pytest

from tenderwatch.core.config.models import DoffinConfig
from tenderwatch.core.normalize.dates import OSLO
from tenderwatch.core.sources.doffin import DoffinAdapter, card_to_tender, parse_cards

from conftest import FakeBrowser

BASE = "https://doffin.no"


def _card(href: str, title: str, buyer: str, price: str = "", extra: str = "") -> str:
    price_html = f"<div>Anslått verdi: {price}</div>" if price else ""
    return f"""
    <a class="_card_k3j9a" href="{href}">
      <p class="_buyer_x81b">{buyer}</p>
      <h2 class="_title_q2v7">{title}</h2>
      <p class="_ingress_m4c1">Oppdraget gjelder {title.lower()}.</p>
      <div>KONKURRANSE</div>
      <div>AKTIV</div>
      <div>Publisert 05.01.2026</div>
      <div>Frist 20.02.2026</div>
      {price_html}
      {extra}
    </a>
    """


SEARCH_HTML = f"""
<html><body><main>
{_card("/notices/2026-101", "Maling av Nordby skole", "Ås kommune", "500 000 NOK")}
{_card("/notices/2026-102", "Rammeavtale maling", "Viken fylke", "300 000 NOK")}
{_card("/notices/2026-103", "Maling av  Nordby skole", "Ås kommune")}
</main></body></html>
"""


class TestParseCards:
    """Tests for result card extraction."""

    def test_reads_cards(self):
        cards = parse_cards(SEARCH_HTML, BASE)

        assert len(cards) == 3
        assert cards[0].title == "Maling av Nordby skole"
        assert cards[0].buyer == "Ås kommune"
        assert cards[0].link == f"{BASE}/notices/2026-101"
        assert cards[0].ingress.startswith("Oppdraget gjelder")

    def test_no_cards(self):
        assert parse_cards("<html><body><p>Ingen treff</p></body></html>", BASE) == []


class TestCardToTender:
    """Tests for card normalization."""

    def test_dates_amount_and_labels(self):
        tender = card_to_tender(parse_cards(SEARCH_HTML, BASE)[0])

        assert tender.published_at == datetime(2026, 1, 5, tzinfo=OSLO)
        assert tender.deadline == datetime(2026, 2, 20, tzinfo=OSLO)
        assert tender.price == "500 000 NOK"
        assert tender.notice_type == "Konkurranse"
        assert tender.status == "Aktiv"
        assert not tender.id_is_stable
        assert tender.id.startswith("doffin_")

    def test_missing_amount(self):
        tender = card_to_tender(parse_cards(SEARCH_HTML, BASE)[2])
        assert tender.price == ""

    def test_same_title_same_id(self):
        cards = parse_cards(SEARCH_HTML, BASE)
        assert card_to_tender(cards[0]).id == card_to_tender(cards[2]).id


class TestDoffinAdapter:
    """Tests for the rendered search flow."""

    @pytest.mark.asyncio
    async def test_filters_and_dedupes(self):
        config = DoffinConfig(settle_ms=0)
        browser = FakeBrowser(pages={config.search_url: SEARCH_HTML})
        adapter = DoffinAdapter(config, browser_factory=lambda: browser)

        outcome = await adapter.fetch()

        assert outcome.success
        assert [t.title for t in outcome.records] == ["Maling av Nordby skole"]
        assert browser.visited == [config.search_url]
        assert browser.closed

    @pytest.mark.asyncio
    async def test_cards_not_rendered(self):
        config = DoffinConfig()
        browser = FakeBrowser(pages={config.search_url: "<html><body></body></html>"}, cards_render=False)
        adapter = DoffinAdapter(config, browser_factory=lambda: browser)

        outcome = await adapter.fetch()

        assert outcome.success
        assert outcome.records == []

    @pytest.mark.asyncio
    async def test_navigation_failure(self):
        config = DoffinConfig()
        browser = FakeBrowser(failing_urls={config.search_url})
        adapter = DoffinAdapter(config, browser_factory=lambda: browser)

        outcome = await adapter.fetch()

        assert not outcome.success
        assert outcome.error.startswith("FetchError")
