"""
Anbud Direkte adapter (authenticated table scrape).

Logs in through the members area, reads the contract-notice grid and
enriches the first listings with data from their detail pages.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable
from urllib.parse import urljoin

from lxml import html as lxml_html
from lxml.html import HtmlElement

from ..backends.base import BackendError
from ..backends.playwright_backend import NavigationTimeout, PlaywrightBackend
from ..config.models import AnbudConfig, BackendConfig, Source
from ..normalize.canonical import Tender, fallback_id
from ..normalize.dates import parse_date
from ..normalize.parsing import normalize_whitespace, truncate
from .base import AuthenticationFailure, SourceAdapter


# Element ids of the ASP.NET login form and result grid
EMAIL_INPUT = "#ctl00_ContentPlaceHolder1_txtEmail"
PASSWORD_INPUT = "#ctl00_ContentPlaceHolder1_txtPassword"
SIGN_IN_BUTTON = "#ctl00_ContentPlaceHolder1_btnSignIn"
RESULTS_TABLE = "#ctl00_ContentPlaceHolder1_grdAlerts"

CONSENT_WORDS = ("godta", "accept", "consent")
LOGGED_IN_MARKERS = ("Logg ut", "LOGG UT")

# Grid column positions
COL_PUBLISHED = 3
COL_TITLE = 4
COL_BUYER = 5
COL_DEADLINE = 6
MIN_CELLS = 7

DESCRIPTION_LIMIT = 500

DEADLINE_PATTERN = re.compile(r"Innleveringsfrist[:\s]+([^\n]+)", re.IGNORECASE)
PUBLISHED_PATTERN = re.compile(r"Publiseringsdato[:\s]+([^\n]+)", re.IGNORECASE)
ID_PATTERN = re.compile(r"\bID[:\s]+(NOR[0-9\-]+)", re.IGNORECASE)
DOCTYPE_PATTERN = re.compile(r"Dokumenttype[:\s]+([^\n]+)", re.IGNORECASE)

BLOCK_TAGS = {
    "address", "article", "br", "dd", "div", "dl", "dt", "footer", "form",
    "h1", "h2", "h3", "h4", "h5", "h6", "header", "hr", "li", "main", "nav",
    "ol", "p", "section", "table", "tbody", "thead", "tr", "ul",
}


@dataclass
class AnbudListing:
    """One row of the contract-notice grid."""

    title: str
    link: str
    buyer: str
    published_raw: str
    deadline_raw: str
    row_index: int = 0


@dataclass
class AnbudDetail:
    """Fields read from a tender detail page."""

    tender_id: str | None = None
    deadline_raw: str | None = None
    published_raw: str | None = None
    category: str | None = None
    description: str | None = None


def _cell_text(cell: HtmlElement) -> str:
    return normalize_whitespace(cell.text_content())


def _inner_text(doc: HtmlElement) -> str:
    """Approximate the browser's innerText: block elements end lines,
    table cells are tab separated."""
    for element in doc.iter():
        if not isinstance(element.tag, str):
            continue
        if element.tag in BLOCK_TAGS:
            element.tail = "\n" + (element.tail or "")
        elif element.tag in {"td", "th"}:
            element.tail = "\t" + (element.tail or "")
    body = doc.find(".//body")
    return (body if body is not None else doc).text_content()


def parse_listing_table(html: str, base_url: str) -> list[AnbudListing]:
    """Parse the contract-notice grid.

    Only data rows (class containing ``GridItem``) with at least seven
    cells are read; header, filter and pager rows are skipped.

    Args:
        html: Listing page HTML
        base_url: Base for resolving relative detail links

    Returns:
        Listings in page order; rows without a title are skipped
    """
    doc = lxml_html.fromstring(html)
    tables = doc.cssselect(RESULTS_TABLE)
    if not tables:
        return []

    listings: list[AnbudListing] = []
    for index, row in enumerate(tables[0].iter("tr")):
        if "GridItem" not in (row.get("class") or ""):
            continue

        cells = row.xpath("./td")
        if len(cells) < MIN_CELLS:
            continue

        title_cell = cells[COL_TITLE]
        anchors = title_cell.cssselect("a")
        if anchors:
            title = _cell_text(anchors[0])
            href = anchors[0].get("href") or ""
            link = urljoin(base_url, href) if href else ""
        else:
            title = _cell_text(title_cell)
            link = ""

        if not title:
            continue

        listings.append(
            AnbudListing(
                title=title,
                link=link,
                buyer=_cell_text(cells[COL_BUYER]),
                published_raw=_cell_text(cells[COL_PUBLISHED]),
                deadline_raw=_cell_text(cells[COL_DEADLINE]),
                row_index=index,
            )
        )

    return listings


def parse_detail_page(html: str) -> AnbudDetail:
    """Extract label/value pairs from a tender detail page.

    Labels are searched in the page text first, then in two-cell table
    rows for anything still missing.
    """
    doc = lxml_html.fromstring(html)
    detail = AnbudDetail()

    description_nodes = doc.cssselect(".ShortDescription, .Description")
    if description_nodes:
        text = normalize_whitespace(description_nodes[0].text_content())
        detail.description = truncate(text, DESCRIPTION_LIMIT) or None

    body_text = _inner_text(doc)

    if match := DEADLINE_PATTERN.search(body_text):
        detail.deadline_raw = match.group(1).strip()
    if match := PUBLISHED_PATTERN.search(body_text):
        detail.published_raw = match.group(1).strip()
    if match := ID_PATTERN.search(body_text):
        detail.tender_id = match.group(1).strip()
    if match := DOCTYPE_PATTERN.search(body_text):
        detail.category = match.group(1).strip()

    for row in doc.iter("tr"):
        cells = row.xpath("./td")
        if len(cells) < 2:
            continue
        label = _cell_text(cells[0])
        value = _cell_text(cells[1])
        if not value:
            continue

        if "Innleveringsfrist" in label and not detail.deadline_raw:
            detail.deadline_raw = value
        elif "Publiseringsdato" in label and not detail.published_raw:
            detail.published_raw = value
        elif "ID:" in label and not detail.tender_id:
            detail.tender_id = value
        elif "Dokumenttype" in label and not detail.category:
            detail.category = value

    return detail


def build_tender(listing: AnbudListing, detail: AnbudDetail | None = None) -> Tender:
    """Merge list-row data with optional detail-page data."""
    detail = detail or AnbudDetail()

    deadline = parse_date(detail.deadline_raw) or parse_date(listing.deadline_raw)
    published = parse_date(detail.published_raw) or parse_date(listing.published_raw)

    if detail.tender_id:
        tender_id, stable = detail.tender_id, True
    else:
        tender_id, stable = fallback_id(Source.ANBUD, listing.title), False

    description = detail.description or (
        f"Innkjøper: {listing.buyer}" if listing.buyer else ""
    )

    return Tender(
        id=tender_id,
        title=listing.title,
        source=Source.ANBUD,
        description=description,
        category=detail.category or "",
        buyer=listing.buyer,
        link=listing.link,
        deadline=deadline,
        published_at=published,
        id_is_stable=stable,
    )


class AnbudAdapter(SourceAdapter):
    """Authenticated scrape of anbuddirekte.no."""

    source = Source.ANBUD
    url = "https://www.anbuddirekte.no"
    requires_login = True

    def __init__(
        self,
        config: AnbudConfig | None = None,
        backend_config: BackendConfig | None = None,
        browser_factory: Callable[[], PlaywrightBackend] | None = None,
    ) -> None:
        super().__init__(backend_config)
        self.config = config or AnbudConfig()
        self._browser_factory = browser_factory or self._default_browser

    def _default_browser(self) -> PlaywrightBackend:
        return PlaywrightBackend(
            headless=self.backend_config.headless,
            timeout=self.backend_config.timeout_seconds,
            user_agent=self.backend_config.user_agent,
        )

    async def collect(self) -> list[Tender]:
        if not self.config.has_credentials:
            raise AuthenticationFailure("Anbud credentials are not configured")

        async with self._browser_factory() as browser:
            await self._login(browser)

            await browser.goto(self.config.listing_url)
            listings = parse_listing_table(
                await browser.get_page_content(),
                self.config.base_url,
            )
            self.log.info(f"Found {len(listings)} listings")

            records: list[Tender] = []
            for index, listing in enumerate(listings):
                detail = None
                if index < self.config.detail_limit and listing.link:
                    detail = await self._fetch_detail(browser, listing)
                records.append(build_tender(listing, detail))

        return records

    async def _fetch_detail(
        self,
        browser: PlaywrightBackend,
        listing: AnbudListing,
    ) -> AnbudDetail | None:
        try:
            await browser.goto(listing.link)
            return parse_detail_page(await browser.get_page_content())
        except BackendError as e:
            self.log.warning(f"Detail page failed, keeping list data for '{listing.title[:50]}': {e}")
            return None

    async def _login(self, browser: PlaywrightBackend) -> None:
        """Sign in and verify the logged-in marker.

        Raises:
            AuthenticationFailure: If the form is missing or the marker absent
        """
        await browser.goto(self.config.login_url)

        if await browser.click_button_with_text(CONSENT_WORDS):
            self.log.debug("Dismissed cookie banner")

        if not await browser.wait_for_selector(EMAIL_INPUT, timeout_ms=15000):
            raise AuthenticationFailure("Login form not found")

        await browser.fill(EMAIL_INPUT, self.config.username or "")
        await browser.fill(PASSWORD_INPUT, self.config.password or "")
        await browser.click(SIGN_IN_BUTTON)

        try:
            await browser.wait_for_load("networkidle")
        except NavigationTimeout:
            self.log.debug("Post-login page still loading, checking marker anyway")

        body_text = await browser.get_body_text()
        if not any(marker in body_text for marker in LOGGED_IN_MARKERS):
            raise AuthenticationFailure("Login rejected: logged-in marker not found")

        self.log.info("Logged in")
