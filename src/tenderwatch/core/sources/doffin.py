"""
Doffin adapter (public client-rendered search).

The search page renders its result cards in the browser, so it is loaded
with Playwright and the cards are parsed from the settled DOM.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable
from urllib.parse import urljoin

from lxml import html as lxml_html

from ..backends.playwright_backend import PlaywrightBackend
from ..config.models import BackendConfig, DoffinConfig, Source
from ..normalize.canonical import Tender, fallback_id
from ..normalize.dates import find_dotted_dates
from ..normalize.parsing import find_nok_amount, normalize_whitespace
from .base import SourceAdapter
from .filters import apply_filter_pipeline, dedupe


CARD_SELECTOR = 'a[class*="_card_"]'
BUYER_SELECTOR = 'p[class*="_buyer_"]'
TITLE_SELECTOR = 'h2[class*="_title_"]'
INGRESS_SELECTOR = 'p[class*="_ingress_"]'

CATEGORY = "Bygg og anlegg"

NOTICE_TYPES = (
    ("KONKURRANSE", "Konkurranse"),
    ("PLANLEGGING", "Planlegging"),
    ("RESULTAT", "Resultat"),
)

STATUSES = (
    ("AKTIV", "Aktiv"),
    ("UTGÅTT", "Utgått"),
    ("TILDELT", "Tildelt"),
)


@dataclass
class DoffinCard:
    """Raw content of one search result card."""

    title: str
    buyer: str
    ingress: str
    link: str
    text: str


def _first_text(element, selector: str) -> str:
    found = element.cssselect(selector)
    return normalize_whitespace(found[0].text_content()) if found else ""


def _first_label(text: str, labels: tuple[tuple[str, str], ...]) -> str:
    for marker, label in labels:
        if marker in text:
            return label
    return ""


def parse_cards(html: str, base_url: str) -> list[DoffinCard]:
    """Extract result cards from a rendered search page."""
    doc = lxml_html.fromstring(html)
    cards: list[DoffinCard] = []

    for card in doc.cssselect(CARD_SELECTOR):
        href = card.get("href") or ""
        cards.append(
            DoffinCard(
                title=_first_text(card, TITLE_SELECTOR),
                buyer=_first_text(card, BUYER_SELECTOR),
                ingress=_first_text(card, INGRESS_SELECTOR),
                link=urljoin(base_url, href) if href else "",
                text=" ".join(card.itertext()),
            )
        )

    return cards


def card_to_tender(card: DoffinCard) -> Tender:
    """Normalize a result card.

    The first ``DD.MM.YYYY`` date on the card is the publication date and
    the second the deadline.
    """
    dates = find_dotted_dates(card.text)

    return Tender(
        id=fallback_id(Source.DOFFIN, card.title),
        title=card.title,
        source=Source.DOFFIN,
        description=card.ingress,
        category=CATEGORY,
        buyer=card.buyer,
        price=find_nok_amount(card.text) or "",
        link=card.link,
        published_at=dates[0] if dates else None,
        deadline=dates[1] if len(dates) > 1 else None,
        notice_type=_first_label(card.text, NOTICE_TYPES),
        status=_first_label(card.text, STATUSES),
        id_is_stable=False,
    )


class DoffinAdapter(SourceAdapter):
    """Public search on doffin.no, narrowed to small construction jobs."""

    source = Source.DOFFIN
    url = "https://doffin.no"

    def __init__(
        self,
        config: DoffinConfig | None = None,
        backend_config: BackendConfig | None = None,
        browser_factory: Callable[[], PlaywrightBackend] | None = None,
    ) -> None:
        super().__init__(backend_config)
        self.config = config or DoffinConfig()
        self._browser_factory = browser_factory or self._default_browser

    def _default_browser(self) -> PlaywrightBackend:
        return PlaywrightBackend(
            headless=self.backend_config.headless,
            timeout=self.backend_config.timeout_seconds,
            user_agent=self.backend_config.user_agent,
        )

    async def collect(self) -> list[Tender]:
        async with self._browser_factory() as browser:
            await browser.goto(self.config.search_url)
            settle_ms = max(self.config.settle_ms, 1000)
            if not await browser.wait_for_selector(CARD_SELECTOR, timeout_ms=settle_ms):
                self.log.warning(f"No result cards rendered within {settle_ms} ms")
            html = await browser.get_page_content()

        tenders = [card_to_tender(card) for card in parse_cards(html, self.config.base_url)]
        tenders = dedupe([t for t in tenders if t.title], key="title")

        kept, report = apply_filter_pipeline(tenders, self.config.budget_ceiling_nok)
        self.log.info(
            f"Filter: {report.total} total -> {report.construction} construction -> "
            f"{report.under_budget} under budget -> {report.beginner_friendly} beginner friendly "
            f"(keeping {report.kept_stage})"
        )
        return kept
