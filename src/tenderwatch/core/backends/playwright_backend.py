"""
Playwright Backend implementation for browser automation.

Provides async browser-based fetching with:
- JavaScript rendering for client-side search pages
- Form filling and clicking for login flows
- Cookie-consent banner dismissal
"""

from __future__ import annotations

import logging
import time
from typing import Any, TYPE_CHECKING

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .base import (
    Backend,
    BackendError,
    BlockedError,
    FetchResult,
    FetchTimeout,
    RequestSpec,
)

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

logger = logging.getLogger(__name__)


# =============================================================================
# Browser Error Classes
# =============================================================================


class BrowserError(BackendError):
    """Base exception for browser errors."""
    pass


class NavigationTimeout(BrowserError, FetchTimeout):
    """Page didn't load in time."""
    pass


class ElementNotFound(BrowserError):
    """Selector didn't match any element."""
    pass


class ActionFailed(BrowserError):
    """Click/fill/submit failed."""
    pass


# =============================================================================
# PlaywrightBackend Implementation
# =============================================================================


class PlaywrightBackend(Backend):
    """Playwright-based browser automation backend.

    One instance holds a single browser, context and page. Adapters open
    it with ``async with`` for the duration of one fetch so the browser is
    released on every exit path.
    """

    def __init__(
        self,
        headless: bool = True,
        timeout: float = 30.0,
        browser_type: str = "chromium",
        viewport_width: int = 1920,
        viewport_height: int = 1080,
        user_agent: str | None = None,
        locale: str = "nb-NO",
        timezone_id: str = "Europe/Oslo",
    ):
        """Initialize Playwright backend.

        Args:
            headless: Run browser in headless mode
            timeout: Default timeout in seconds
            browser_type: Browser to use (chromium, firefox, webkit)
            viewport_width: Browser viewport width
            viewport_height: Browser viewport height
            user_agent: Custom user agent string
            locale: Browser locale
            timezone_id: Browser timezone
        """
        self.headless = headless
        self.timeout = timeout
        self.timeout_ms = int(timeout * 1000)
        self.browser_type = browser_type
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.locale = locale
        self.timezone_id = timezone_id

        self.user_agent = user_agent or (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/120.0.0.0 Safari/537.36"
        )

        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    @property
    def name(self) -> str:
        return "playwright"

    async def _ensure_browser(self) -> None:
        """Initialize browser if not already running."""
        if self._browser is not None and self._browser.is_connected():
            return

        self._playwright = await async_playwright().start()

        if self.browser_type == "firefox":
            browser_launcher = self._playwright.firefox
        elif self.browser_type == "webkit":
            browser_launcher = self._playwright.webkit
        else:
            browser_launcher = self._playwright.chromium

        launch_args: list[str] = []
        if self.browser_type == "chromium":
            launch_args = [
                "--disable-blink-features=AutomationControlled",
                "--disable-dev-shm-usage",
                "--no-sandbox",
            ]

        try:
            self._browser = await browser_launcher.launch(
                headless=self.headless,
                args=launch_args,
            )
        except PlaywrightError as e:
            raise BrowserError(
                f"Failed to launch {self.browser_type} browser. "
                "Run: playwright install chromium",
                cause=e,
            ) from e

        logger.info(f"Launched {self.browser_type} browser (headless={self.headless})")

    async def _ensure_context(self) -> BrowserContext:
        """Get or create browser context."""
        await self._ensure_browser()

        if self._context is not None:
            return self._context

        context_options: dict[str, Any] = {
            "viewport": {"width": self.viewport_width, "height": self.viewport_height},
            "user_agent": self.user_agent,
            "locale": self.locale,
            "timezone_id": self.timezone_id,
        }

        self._context = await self._browser.new_context(**context_options)  # type: ignore[union-attr]
        return self._context

    async def _get_page(self) -> Page:
        """Get or create a page."""
        context = await self._ensure_context()

        if self._page is None or self._page.is_closed():
            self._page = await context.new_page()
            self._page.set_default_timeout(self.timeout_ms)

        return self._page

    async def goto(
        self,
        url: str,
        wait_until: str = "networkidle",
        timeout: float | None = None,
    ) -> int:
        """Navigate the page to a URL.

        Args:
            url: Target URL
            wait_until: Playwright load state to wait for
            timeout: Navigation timeout in seconds (default: backend timeout)

        Returns:
            HTTP status of the main document (200 when unknown)

        Raises:
            NavigationTimeout: If the page doesn't load in time
            BlockedError: If the site answers with a blocking status
            BrowserError: On any other navigation failure
        """
        page = await self._get_page()
        timeout_ms = int((timeout or self.timeout) * 1000)

        try:
            response = await page.goto(url, timeout=timeout_ms, wait_until=wait_until)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(f"Navigation timeout: {url}", url=url, cause=e) from e
        except PlaywrightError as e:
            raise BrowserError(f"Browser error: {e}", url=url, cause=e) from e

        status_code = response.status if response else 200
        if status_code in {403, 406, 418, 451}:
            raise BlockedError(
                f"Request blocked with status {status_code}",
                url=url,
                status_code=status_code,
            )
        return status_code

    async def fetch(self, request: RequestSpec) -> FetchResult:
        """Fetch a URL with JavaScript rendering.

        Args:
            request: Request specification

        Returns:
            FetchResult with rendered content
        """
        start = time.perf_counter()
        status_code = await self.goto(request.url, timeout=request.timeout)
        page = await self._get_page()
        html = await self._content(page)

        return FetchResult(
            url=request.url,
            final_url=page.url,
            status_code=status_code,
            html=html,
            headers={},
            elapsed_ms=(time.perf_counter() - start) * 1000,
        )

    async def click(
        self,
        selector: str,
        timeout_ms: int | None = None,
        optional: bool = False,
    ) -> bool:
        """Click an element.

        Args:
            selector: CSS selector
            timeout_ms: Wait timeout for the element
            optional: Return False instead of raising when missing

        Returns:
            True if the element was clicked
        """
        page = await self._get_page()
        try:
            await page.click(selector, timeout=timeout_ms or self.timeout_ms)
            return True
        except PlaywrightTimeoutError as e:
            if optional:
                return False
            raise ElementNotFound(f"Element not found: {selector}", url=page.url, cause=e) from e
        except PlaywrightError as e:
            if optional:
                return False
            raise ActionFailed(f"Click failed on {selector}: {e}", url=page.url, cause=e) from e

    async def fill(self, selector: str, value: str, timeout_ms: int | None = None) -> None:
        """Fill a text input.

        Raises:
            ElementNotFound: If the input doesn't appear in time
        """
        page = await self._get_page()
        try:
            await page.fill(selector, value, timeout=timeout_ms or self.timeout_ms)
        except PlaywrightTimeoutError as e:
            raise ElementNotFound(f"Input not found: {selector}", url=page.url, cause=e) from e
        except PlaywrightError as e:
            raise ActionFailed(f"Fill failed on {selector}: {e}", url=page.url, cause=e) from e

    async def wait_for_selector(self, selector: str, timeout_ms: int | None = None) -> bool:
        """Wait for a selector to appear.

        Returns:
            True if found, False on timeout
        """
        page = await self._get_page()
        try:
            await page.wait_for_selector(selector, timeout=timeout_ms or self.timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    async def wait_for_load(self, state: str = "networkidle", timeout_ms: int | None = None) -> None:
        page = await self._get_page()
        try:
            await page.wait_for_load_state(state, timeout=timeout_ms or self.timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(f"Page did not reach {state}", url=page.url, cause=e) from e

    async def click_button_with_text(self, words: tuple[str, ...]) -> bool:
        """Click the first visible button whose text contains one of ``words``.

        Used for cookie-consent banners whose markup varies.

        Returns:
            True if a button was clicked
        """
        page = await self._get_page()
        buttons = page.locator("button")
        count = await buttons.count()

        for index in range(count):
            button = buttons.nth(index)
            try:
                text = (await button.inner_text()).lower()
                if any(word in text for word in words) and await button.is_visible():
                    await button.click()
                    return True
            except PlaywrightError:
                continue
        return False

    async def _content(self, page: Page) -> str:
        try:
            return await page.content()
        except PlaywrightError as e:
            raise BrowserError(f"Could not read page content: {e}", url=page.url, cause=e) from e

    async def get_page_content(self) -> str:
        """Get current page HTML content.

        Raises:
            BrowserError: If the page navigated away or was closed mid-read
        """
        page = await self._get_page()
        return await self._content(page)

    async def get_body_text(self) -> str:
        """Get the rendered text of the page body."""
        page = await self._get_page()
        try:
            return await page.inner_text("body")
        except PlaywrightError as e:
            raise BrowserError(f"Could not read page text: {e}", url=page.url, cause=e) from e

    async def close(self) -> None:
        """Close browser and clean up resources."""
        if self._page and not self._page.is_closed():
            await self._page.close()
        self._page = None

        if self._context:
            await self._context.close()
            self._context = None

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        logger.debug("Playwright backend closed")
