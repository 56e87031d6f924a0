"""Tests for the TED adapter."""

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from tenderwatch.core.backends.http_backend import HttpBackend
from tenderwatch.core.config.models import Source, TedConfig
from tenderwatch.core.sources.ted import (
    TedAdapter,
    extract_i18n,
    notice_to_tender,
    reduce_title,
)

NOTICE_URL = "https://ted.europa.eu/en/notice/-/detail/{publication_number}"

BRIDGE_NOTICE = {
    "publication-number": "12345-2026",
    "notice-title": {
        "nor": "Norge – Bygg – Rehabilitering av bru",
        "eng": "Norway – Construction – Repair of bridge",
    },
    "buyer-name": {"nor": ["Statens vegvesen"]},
    "description-lot": {"eng": ["Repair works on a county road bridge"]},
    "deadline-receipt-tender-date-lot": ["2026-03-10+01:00"],
    "publication-date": "2026-02-01Z",
    "notice-type": {"value": "cn-standard", "label": "Contract notice"},
    "place-of-performance": [{"label": "NO081"}, {"label": "00"}],
}

ADVISORY_NOTICE = {
    "publication-number": "23456-2026",
    "notice-title": {"eng": "Norway – Services – Legal advisory services"},
    "buyer-name": {"eng": "Finansdepartementet"},
}


def _backend(handler) -> HttpBackend:
    return HttpBackend(transport=httpx.MockTransport(handler), max_retries=1)


class TestReduceTitle:
    """Tests for the country/category prefix removal."""

    def test_three_segments(self):
        assert reduce_title("Norway – Construction – Repaint School Roof") == "Repaint School Roof"

    def test_keeps_later_separators(self):
        assert reduce_title("Norway – Works – Roof – phase 2") == "Roof – phase 2"

    def test_two_segments(self):
        assert reduce_title("Norway – Repaint School Roof") == "Repaint School Roof"

    def test_single_segment_unchanged(self):
        assert reduce_title("Repaint School Roof") == "Repaint School Roof"

    def test_empty(self):
        assert reduce_title("") == ""


class TestExtractI18n:
    """Tests for multilingual field extraction."""

    def test_prefers_english(self):
        assert extract_i18n({"deu": "Brücke", "eng": "Bridge"}) == "Bridge"

    def test_falls_back_to_first_language(self):
        assert extract_i18n({"nor": ["Bru"]}) == "Bru"

    def test_scalar_and_list(self):
        assert extract_i18n("Bridge") == "Bridge"
        assert extract_i18n(["Bridge", "Other"]) == "Bridge"

    def test_empty_values(self):
        assert extract_i18n(None) == ""
        assert extract_i18n({}) == ""
        assert extract_i18n([]) == ""


class TestNoticeToTender:
    """Tests for notice normalization."""

    def test_maps_fields(self):
        tender = notice_to_tender(BRIDGE_NOTICE, NOTICE_URL)

        assert tender.id == "ted_12345-2026"
        assert tender.id_is_stable
        assert tender.title == "Repair of bridge"
        assert tender.buyer == "Statens vegvesen"
        assert tender.location == "NO081"
        assert tender.notice_type == "Contract notice"
        assert tender.link == "https://ted.europa.eu/en/notice/-/detail/12345-2026"
        assert tender.deadline == datetime(2026, 3, 10, tzinfo=timezone(timedelta(hours=1)))
        assert tender.published_at == datetime(2026, 2, 1, tzinfo=timezone.utc)

    def test_description_falls_back_to_buyer(self):
        tender = notice_to_tender(ADVISORY_NOTICE, NOTICE_URL)

        assert tender.description == "Innkjøper: Finansdepartementet"
        assert tender.deadline is None

    def test_title_falls_back_to_publication_number(self):
        tender = notice_to_tender({"publication-number": "999-2026"}, NOTICE_URL)
        assert tender.title == "999-2026"

    def test_unrepresentable_deadline_dropped(self):
        notice = {**BRIDGE_NOTICE, "deadline-receipt-tender-date-lot": ["0001-01-01+01:00"]}

        tender = notice_to_tender(notice, NOTICE_URL)

        assert tender.title == "Repair of bridge"
        assert tender.deadline is None


class TestTedAdapter:
    """Tests for the API search flow."""

    @pytest.mark.asyncio
    async def test_search_request_and_filter(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200,
                json={
                    "notices": [BRIDGE_NOTICE, ADVISORY_NOTICE, {"notice-title": "no number"}],
                    "totalNoticeCount": 3,
                },
            )

        adapter = TedAdapter(TedConfig(limit=10), backend=_backend(handler))

        outcome = await adapter.fetch()

        assert outcome.success
        assert outcome.source == Source.TED
        assert [t.id for t in outcome.records] == ["ted_12345-2026"]

        body = json.loads(requests[0].content)
        assert requests[0].method == "POST"
        assert body["limit"] == 10
        assert body["query"] == "organisation-country-buyer=NOR AND publication-date>=20250101"

    @pytest.mark.asyncio
    async def test_keeps_everything_without_keyword_match(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"notices": [ADVISORY_NOTICE], "totalNoticeCount": 1})

        outcome = await TedAdapter(backend=_backend(handler)).fetch()

        assert [t.title for t in outcome.records] == ["Legal advisory services"]

    @pytest.mark.asyncio
    async def test_http_error_is_failed_outcome(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="server error")

        outcome = await TedAdapter(backend=_backend(handler)).fetch()

        assert not outcome.success
        assert outcome.records == []
        assert outcome.error.startswith("FetchError: HTTP 500")

    @pytest.mark.asyncio
    async def test_unexpected_payload(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[1, 2, 3])

        outcome = await TedAdapter(backend=_backend(handler)).fetch()

        assert not outcome.success
        assert "Unexpected TED response shape" in outcome.error
