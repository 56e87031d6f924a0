"""Backend implementations for fetching and rendering pages."""

from .base import (
    Backend,
    BackendError,
    BlockedError,
    FetchError,
    FetchResult,
    FetchTimeout,
    RateLimitError,
    RequestSpec,
)
from .http_backend import HttpBackend
from .playwright_backend import (
    ActionFailed,
    BrowserError,
    ElementNotFound,
    NavigationTimeout,
    PlaywrightBackend,
)

__all__ = [
    "Backend",
    "BackendError",
    "BlockedError",
    "FetchError",
    "FetchResult",
    "FetchTimeout",
    "RateLimitError",
    "RequestSpec",
    "HttpBackend",
    "ActionFailed",
    "BrowserError",
    "ElementNotFound",
    "NavigationTimeout",
    "PlaywrightBackend",
]
