"""
HTTP Backend implementation using httpx.

Provides async HTTP fetching with:
- JSON and form POST bodies
- Automatic retry with exponential backoff
- Rate limit and block detection
"""

from __future__ import annotations

import time

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .base import (
    Backend,
    BlockedError,
    FetchError,
    FetchResult,
    FetchTimeout,
    RateLimitError,
    RequestSpec,
)


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Status codes that indicate blocking
BLOCKED_STATUS_CODES = {403, 406, 418, 451}

BLOCKED_INDICATORS = (
    "captcha",
    "challenge-platform",
    "cf-browser-verification",
    "please verify you are human",
    "unusual traffic",
)


class HttpBackend(Backend):
    """HTTP backend using httpx for async requests.

    Features:
    - Persistent connection pooling
    - Automatic redirect following
    - Retry with exponential backoff on transport errors and 429s
    """

    def __init__(
        self,
        timeout: float = 30.0,
        max_retries: int = 3,
        user_agent: str | None = None,
        default_headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_wait_max: float = 30.0,
    ):
        """Initialize HTTP backend.

        Args:
            timeout: Default request timeout in seconds
            max_retries: Maximum attempts per request
            user_agent: Custom user agent
            default_headers: Default headers for all requests
            transport: Optional httpx transport (mock transports in tests)
            retry_wait_max: Upper bound for the backoff between attempts
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_wait_max = retry_wait_max
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self.transport = transport

        self.default_headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/json, text/html;q=0.9, */*;q=0.8",
            "Accept-Language": "nb-NO,nb;q=0.9,en;q=0.8",
            **(default_headers or {}),
        }

        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "http"

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                headers=self.default_headers,
                transport=self.transport,
            )
        return self._client

    def _check_blocked(self, response: httpx.Response) -> None:
        """Check if response indicates blocking."""
        if response.status_code in BLOCKED_STATUS_CODES:
            raise BlockedError(
                f"Request blocked with status {response.status_code}",
                url=str(response.url),
                status_code=response.status_code,
            )

        # Only small HTML pages are inspected; API payloads may legitimately
        # contain any of these words.
        content_type = response.headers.get("content-type", "")
        if "html" not in content_type:
            return

        html = response.text
        if len(html) >= 50000:
            return

        html_lower = html.lower()
        for indicator in BLOCKED_INDICATORS:
            if indicator in html_lower:
                raise BlockedError(
                    f"Possible anti-bot block detected: '{indicator}' in response",
                    url=str(response.url),
                    status_code=response.status_code,
                )

    def _check_rate_limit(self, response: httpx.Response) -> None:
        """Check for rate limiting."""
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            retry_seconds = None

            if retry_after:
                try:
                    retry_seconds = float(retry_after)
                except ValueError:
                    pass

            raise RateLimitError(
                "Rate limit exceeded",
                url=str(response.url),
                retry_after=retry_seconds,
            )

    async def fetch(self, request: RequestSpec) -> FetchResult:
        """Fetch a URL with automatic retry.

        Args:
            request: Request specification

        Returns:
            FetchResult with response data

        Raises:
            FetchTimeout: If every attempt timed out
            FetchError: On transport failure or non-2xx status
            BlockedError: If the response looks like a block page
            RateLimitError: If still rate limited after all attempts
        """
        client = await self._ensure_client()
        headers = {**self.default_headers, **request.headers}
        method = request.method.upper()

        if method not in {"GET", "POST"}:
            raise FetchError(f"Unsupported method: {request.method}", url=request.url)

        retry_count = 0

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries),
                wait=wait_exponential(multiplier=1, min=1, max=self.retry_wait_max),
                retry=retry_if_exception_type((httpx.TransportError, RateLimitError)),
                reraise=True,
            ):
                with attempt:
                    retry_count = attempt.retry_state.attempt_number - 1
                    start = time.perf_counter()

                    response = await client.request(
                        method,
                        request.url,
                        headers=headers,
                        params=request.params or None,
                        data=request.data,
                        json=request.json_data,
                        timeout=request.timeout,
                        follow_redirects=request.follow_redirects,
                    )

                    elapsed_ms = (time.perf_counter() - start) * 1000

                    self._check_rate_limit(response)
                    self._check_blocked(response)

                    if response.status_code >= 400:
                        raise FetchError(
                            f"HTTP {response.status_code} from {request.url}",
                            url=request.url,
                            status_code=response.status_code,
                        )

                    return FetchResult(
                        url=request.url,
                        final_url=str(response.url),
                        status_code=response.status_code,
                        html=response.text,
                        headers=dict(response.headers),
                        elapsed_ms=elapsed_ms,
                        retry_count=retry_count,
                    )

        except (BlockedError, RateLimitError, FetchError):
            raise
        except httpx.TimeoutException as e:
            raise FetchTimeout(
                f"Timed out after {retry_count + 1} attempts: {request.url}",
                url=request.url,
                cause=e,
            ) from e
        except httpx.TransportError as e:
            raise FetchError(
                f"Transport error after {retry_count + 1} attempts: {e}",
                url=request.url,
                cause=e,
            ) from e

        # AsyncRetrying with reraise=True always returns or raises above
        raise FetchError(f"Fetch failed: {request.url}", url=request.url)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
