"""
TED adapter (public structured search API).

Queries the TED notices search endpoint for notices whose buyer is in the
configured country and maps each notice onto a ``Tender``. Fields in the
response may be scalars, arrays or maps keyed by language code.
"""

from __future__ import annotations

from typing import Any

from ..backends.base import FetchError, RequestSpec
from ..backends.http_backend import HttpBackend
from ..config.models import BackendConfig, Source, TedConfig
from ..normalize.canonical import Tender
from ..normalize.dates import LocaleHint, parse_date
from ..normalize.parsing import normalize_whitespace, truncate
from .base import SourceAdapter
from .filters import (
    CONSTRUCTION_KEYWORDS_EN,
    CONSTRUCTION_KEYWORDS_NO,
    dedupe,
    filter_construction_or_all,
)


LANGUAGE_PREFERENCE = ("eng", "dan", "swe", "nld", "deu", "fra")

TITLE_SEPARATOR = " – "

CATEGORY = "Tenders Norway (EU/TED)"

TITLE_LIMIT = 300
DESCRIPTION_LIMIT = 500

SEARCH_FIELDS = [
    "publication-number",
    "notice-title",
    "buyer-name",
    "organisation-country-buyer",
    "notice-type",
    "deadline-receipt-tender-date-lot",
    "publication-date",
    "description-lot",
    "place-of-performance",
]


def _first_scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        return _first_scalar(value[0]) if value else ""
    if isinstance(value, dict):
        return extract_i18n(value)
    return ""


def extract_i18n(raw: Any) -> str:
    """Pick a single string out of a scalar, array or language map.

    Language maps are read in ``LANGUAGE_PREFERENCE`` order, falling back
    to the first key present.
    """
    if not raw:
        return ""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, list):
        return _first_scalar(raw)
    if isinstance(raw, dict):
        for language in LANGUAGE_PREFERENCE:
            if raw.get(language):
                return _first_scalar(raw[language])
        for value in raw.values():
            if value:
                return _first_scalar(value)
    return ""


def reduce_title(full_title: str) -> str:
    """Strip the ``Country – Category – `` prefix TED puts on titles.

    With three or more segments everything after the second separator is
    kept; with two segments the second is kept; a single segment is
    returned unchanged.
    """
    if not full_title:
        return ""
    parts = full_title.split(TITLE_SEPARATOR)
    if len(parts) >= 3:
        return TITLE_SEPARATOR.join(parts[2:]).strip()
    if len(parts) == 2:
        return parts[1].strip()
    return full_title.strip()


def _notice_type(raw: Any) -> str:
    if isinstance(raw, dict):
        return str(raw.get("label") or raw.get("value") or "")
    return _first_scalar(raw)


def _location(raw: Any) -> str:
    if not isinstance(raw, list):
        return ""
    labels = []
    for place in raw:
        label = place.get("label") if isinstance(place, dict) else place
        if label and label != "00":
            labels.append(str(label))
    return ", ".join(labels)


def notice_to_tender(notice: dict[str, Any], notice_url: str) -> Tender:
    """Map one API notice onto a Tender."""
    publication_number = _first_scalar(notice.get("publication-number"))
    title = reduce_title(extract_i18n(notice.get("notice-title"))) or publication_number
    buyer = normalize_whitespace(extract_i18n(notice.get("buyer-name")))
    description = normalize_whitespace(extract_i18n(notice.get("description-lot")))

    if description:
        description = truncate(description, DESCRIPTION_LIMIT)
    elif buyer:
        description = f"Innkjøper: {buyer}"

    return Tender(
        id=f"ted_{publication_number}",
        title=truncate(title, TITLE_LIMIT),
        source=Source.TED,
        description=description,
        category=CATEGORY,
        buyer=buyer,
        location=_location(notice.get("place-of-performance")),
        link=notice_url.format(publication_number=publication_number),
        deadline=parse_date(
            _first_scalar(notice.get("deadline-receipt-tender-date-lot")),
            hint=LocaleHint.ISO,
        ),
        published_at=parse_date(
            _first_scalar(notice.get("publication-date")),
            hint=LocaleHint.ISO,
        ),
        notice_type=_notice_type(notice.get("notice-type")),
        id_is_stable=True,
    )


class TedAdapter(SourceAdapter):
    """Notices for Norwegian buyers from the TED search API."""

    source = Source.TED
    url = "https://ted.europa.eu"

    def __init__(
        self,
        config: TedConfig | None = None,
        backend_config: BackendConfig | None = None,
        backend: HttpBackend | None = None,
    ) -> None:
        super().__init__(backend_config)
        self.config = config or TedConfig()
        self._backend = backend

    def build_query(self) -> dict[str, Any]:
        return {
            "page": 1,
            "limit": self.config.limit,
            "scope": self.config.scope,
            "query": (
                f"organisation-country-buyer={self.config.country} "
                f"AND publication-date>={self.config.min_publication_date}"
            ),
            "fields": SEARCH_FIELDS,
        }

    def _make_backend(self) -> HttpBackend:
        if self._backend is not None:
            return self._backend
        return HttpBackend(
            timeout=self.backend_config.timeout_seconds,
            max_retries=self.backend_config.max_retries,
            user_agent=self.backend_config.user_agent,
        )

    async def collect(self) -> list[Tender]:
        request = RequestSpec(
            url=self.config.api_url,
            method="POST",
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            json_data=self.build_query(),
            timeout=self.backend_config.timeout_seconds,
            source=self.source.value,
            page_type="search",
        )

        async with self._make_backend() as backend:
            result = await backend.fetch(request)

        payload = result.json()
        if not isinstance(payload, dict):
            raise FetchError("Unexpected TED response shape", url=request.url)

        notices = payload.get("notices") or []
        self.log.info(f"API returned {len(notices)} of {payload.get('totalNoticeCount', 0)} notices")

        tenders = [
            notice_to_tender(notice, self.config.notice_url)
            for notice in notices
            if isinstance(notice, dict) and notice.get("publication-number")
        ]
        tenders = dedupe([t for t in tenders if t.title])

        return filter_construction_or_all(
            tenders,
            CONSTRUCTION_KEYWORDS_EN + CONSTRUCTION_KEYWORDS_NO,
        )
