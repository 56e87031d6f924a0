"""
Canonical tender model for normalized data.

Provides a clean interface between source adapters, persistence and
notifications. Every adapter returns ``Tender`` instances.
"""

from __future__ import annotations

import hashlib
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from ..config.models import Source
from .dates import ensure_utc, utcnow
from .parsing import normalize_title, normalize_whitespace


def fallback_id(source: Source | str, title: str) -> str:
    """Deterministic id for sources that don't publish one.

    Derived from the normalized title so the same listing maps to the same
    id on every run.
    """
    source_value = source.value if isinstance(source, Source) else source
    digest = hashlib.sha256(normalize_title(title).encode("utf-8")).hexdigest()[:16]
    return f"{source_value}_{digest}"


@dataclass
class Tender:
    """Normalized tender listing ready for persistence.

    ``(source, id)`` identifies a tender. ``id_is_stable`` is False when the
    id was derived from the title, in which case title matching is also
    used to recognize already-seen listings.
    """

    id: str
    title: str
    source: Source

    description: str = ""
    category: str = ""
    buyer: str = ""
    location: str = ""
    price: str = ""
    link: str = ""

    # Aware datetimes; never raw strings
    deadline: datetime | None = None
    published_at: datetime | None = None
    scraped_at: datetime = field(default_factory=utcnow)

    notice_type: str = ""
    status: str = ""
    id_is_stable: bool = True

    def __post_init__(self) -> None:
        self.title = normalize_whitespace(self.title)
        self.deadline = ensure_utc(self.deadline)
        self.published_at = ensure_utc(self.published_at)
        self.scraped_at = ensure_utc(self.scraped_at) or utcnow()

    @property
    def key(self) -> tuple[str, str]:
        return (self.source.value, self.id)

    @property
    def normalized_title(self) -> str:
        return normalize_title(self.title)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["source"] = self.source.value
        for key in ("deadline", "published_at", "scraped_at"):
            value = data[key]
            data[key] = value.isoformat() if value else None
        return data
