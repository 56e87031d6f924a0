"""
Source adapter base class and interfaces.

Defines the contract every tender source implements: fetch listings,
normalize them into ``Tender`` records and report success or failure as a
value instead of an exception.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar, TYPE_CHECKING

from ..backends.base import BackendError
from ..config.models import BackendConfig, Source
from ..logging import get_contextual_logger

if TYPE_CHECKING:
    from ..normalize.canonical import Tender


# =============================================================================
# Errors
# =============================================================================


class SourceError(Exception):
    """Base exception for source adapter failures."""
    pass


class AuthenticationFailure(SourceError):
    """Login to an authenticated source failed; no partial data is returned."""
    pass


class UnavailableSource(SourceError):
    """Source can't be scraped at all (permanent, expected)."""
    pass


# =============================================================================
# Results
# =============================================================================


@dataclass
class FetchOutcome:
    """Records and status of one adapter invocation."""

    source: Source
    records: list[Tender] = field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


# =============================================================================
# Adapter Base
# =============================================================================


class SourceAdapter(ABC):
    """Base class for source-specific fetch and normalize logic.

    Subclasses implement :meth:`collect`. Expected failures
    (:class:`SourceError`, :class:`BackendError`) are turned into a failed
    :class:`FetchOutcome` by :meth:`fetch`.
    """

    source: ClassVar[Source]
    url: ClassVar[str] = ""
    requires_login: ClassVar[bool] = False

    def __init__(self, backend_config: BackendConfig | None = None) -> None:
        self.backend_config = backend_config or BackendConfig()
        self.log = get_contextual_logger(f"sources.{self.source.value}", source=self.source.value)

    @property
    def display_name(self) -> str:
        return self.source.display_name

    @abstractmethod
    async def collect(self) -> list[Tender]:
        """Fetch and normalize listings.

        Returns:
            Canonical tender records (may include untitled records, which
            :meth:`fetch` drops)

        Raises:
            SourceError: On authentication or availability failure
            BackendError: On network or rendering failure
        """
        pass

    async def fetch(self) -> FetchOutcome:
        """Run the adapter and wrap the result.

        Returns:
            FetchOutcome with records on success, or an error message
        """
        try:
            records = await self.collect()
        except (SourceError, BackendError) as e:
            self.log.warning(f"Fetch failed: {type(e).__name__}: {e}")
            return FetchOutcome(source=self.source, error=f"{type(e).__name__}: {e}")

        titled = [record for record in records if record.title]
        dropped = len(records) - len(titled)
        if dropped:
            self.log.debug(f"Dropped {dropped} records without a title")

        self.log.info(f"Fetched {len(titled)} tenders")
        return FetchOutcome(source=self.source, records=titled)
