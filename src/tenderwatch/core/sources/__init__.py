"""Source adapters - one per monitored tender site."""

from __future__ import annotations

from ..config.models import AppConfig, Source
from .anbud import AnbudAdapter
from .base import (
    AuthenticationFailure,
    FetchOutcome,
    SourceAdapter,
    SourceError,
    UnavailableSource,
)
from .doffin import DoffinAdapter
from .mercell import MercellAdapter
from .ted import TedAdapter


def build_adapters(config: AppConfig) -> dict[Source, SourceAdapter]:
    """Instantiate one adapter per source from application config."""
    backend = config.backend
    sources = config.sources
    return {
        Source.ANBUD: AnbudAdapter(sources.anbud, backend),
        Source.DOFFIN: DoffinAdapter(sources.doffin, backend),
        Source.TED: TedAdapter(sources.ted, backend),
        Source.MERCELL: MercellAdapter(backend),
    }


__all__ = [
    "AnbudAdapter",
    "AuthenticationFailure",
    "DoffinAdapter",
    "FetchOutcome",
    "MercellAdapter",
    "SourceAdapter",
    "SourceError",
    "TedAdapter",
    "UnavailableSource",
    "build_adapters",
]
