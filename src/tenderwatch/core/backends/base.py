"""
Backend base classes and data structures.

Defines the interface contract for the fetching backends used by the
source adapters.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import orjson


@dataclass
class RequestSpec:
    """Specification for an HTTP request."""

    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)
    data: dict[str, Any] | None = None
    json_data: dict[str, Any] | None = None
    timeout: float = 30.0
    follow_redirects: bool = True

    # Metadata for logging/debugging
    source: str | None = None
    page_type: str | None = None  # "listing", "detail", "search"


@dataclass
class FetchResult:
    """Result of a fetch operation."""

    url: str
    final_url: str  # After redirects
    status_code: int
    html: str
    headers: dict[str, str]

    elapsed_ms: float
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    retry_count: int = 0

    @property
    def ok(self) -> bool:
        """Check if request was successful (2xx status)."""
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.html

    def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            FetchError: If the body is not valid JSON
        """
        try:
            return orjson.loads(self.html)
        except orjson.JSONDecodeError as e:
            raise FetchError(
                f"Response is not valid JSON: {e}",
                url=self.final_url,
                status_code=self.status_code,
                cause=e,
            ) from e


class Backend(ABC):
    """Abstract base class for fetching backends.

    All backends must implement the fetch method.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier."""
        pass

    @abstractmethod
    async def fetch(self, request: RequestSpec) -> FetchResult:
        """Fetch a URL and return the response.

        Args:
            request: Request specification

        Returns:
            FetchResult with response data

        Raises:
            BackendError: On unrecoverable fetch failure
        """
        pass

    async def close(self) -> None:
        """Clean up backend resources."""
        pass

    async def __aenter__(self) -> "Backend":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class BackendError(Exception):
    """Base exception for backend errors."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.cause = cause


class FetchError(BackendError):
    """Error during fetch operation."""
    pass


class FetchTimeout(FetchError):
    """Fetch or navigation exceeded its timeout."""
    pass


class RateLimitError(BackendError):
    """Rate limit hit (429 or similar)."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(message, url, status_code=429)
        self.retry_after = retry_after


class BlockedError(BackendError):
    """Request blocked by anti-bot measures."""
    pass
