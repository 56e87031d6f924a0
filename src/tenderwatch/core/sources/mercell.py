"""
Mercell adapter.

Mercell only serves tenders to paying subscribers and redirects everything
else to a marketing page, so this adapter never touches the network and
always reports the source as unavailable.
"""

from __future__ import annotations

from ..config.models import Source
from ..normalize.canonical import Tender
from .base import SourceAdapter, UnavailableSource


class MercellAdapter(SourceAdapter):
    """Placeholder for a source that requires a paid subscription."""

    source = Source.MERCELL
    url = "https://www.mercell.com"
    requires_login = True

    async def collect(self) -> list[Tender]:
        raise UnavailableSource("Mercell requires subscription")
