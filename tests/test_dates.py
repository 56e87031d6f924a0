"""Tests for date normalization."""

from datetime import date, datetime, timedelta, timezone

import pytest

from tenderwatch.core.normalize.dates import (
    OSLO,
    LocaleHint,
    ensure_utc,
    find_dotted_dates,
    parse_date,
    parse_dotted,
    parse_iso,
    parse_spelled,
)


class TestParseDotted:
    """Tests for DD.MM.YYYY dates."""

    def test_plain_date(self):
        assert parse_dotted("19.01.2026") == datetime(2026, 1, 19, tzinfo=OSLO)

    def test_with_time(self):
        assert parse_dotted("19.01.2026 12:00") == datetime(2026, 1, 19, 12, 0, tzinfo=OSLO)

    def test_with_kl_marker(self):
        assert parse_dotted("19.01.2026 kl. 14.30") == datetime(2026, 1, 19, 14, 30, tzinfo=OSLO)

    def test_out_of_range_day(self):
        assert parse_dotted("32.01.2026") is None

    def test_two_digit_year_rejected(self):
        assert parse_dotted("19.01.26") is None


class TestParseSpelled:
    """Tests for Norwegian spelled-out month names."""

    def test_day_month_year(self):
        assert parse_spelled("19. januar 2026") == datetime(2026, 1, 19, tzinfo=OSLO)

    def test_weekday_and_time(self):
        result = parse_spelled("mandag 2. mars 2026 kl. 12:00")
        assert result == datetime(2026, 3, 2, 12, 0, tzinfo=OSLO)

    def test_abbreviated_month(self):
        assert parse_spelled("5. okt. 2026") == datetime(2026, 10, 5, tzinfo=OSLO)

    def test_missing_day(self):
        assert parse_spelled("januar 2026") is None

    def test_unknown_month(self):
        assert parse_spelled("19. brumaire 2026") is None

    def test_non_four_digit_year(self):
        assert parse_spelled("19. januar 26") is None

    def test_invalid_day_for_month(self):
        assert parse_spelled("31. februar 2026") is None


class TestParseIso:
    """Tests for ISO 8601 values."""

    def test_date_with_offset(self):
        result = parse_iso("2026-03-10+01:00")
        assert result == datetime(2026, 3, 10, tzinfo=timezone(timedelta(hours=1)))
        assert ensure_utc(result) == datetime(2026, 3, 9, 23, 0, tzinfo=timezone.utc)

    def test_date_with_z(self):
        assert parse_iso("2026-02-07Z") == datetime(2026, 2, 7, tzinfo=timezone.utc)

    def test_full_datetime_with_offset(self):
        result = parse_iso("2026-03-10T12:30:00+02:00")
        assert ensure_utc(result) == datetime(2026, 3, 10, 10, 30, tzinfo=timezone.utc)

    def test_bare_date_is_utc(self):
        assert parse_iso("2026-03-10") == datetime(2026, 3, 10, tzinfo=timezone.utc)

    def test_invalid_month(self):
        assert parse_iso("2026-13-10") is None

    def test_offset_beyond_a_day(self):
        assert parse_iso("2026-03-10T12:00+25:00") is None
        assert parse_date("2026-03-10T12:00+25:00") is None


class TestParseDate:
    """Tests for the format-dispatching entry point."""

    @pytest.mark.parametrize(
        "raw",
        ["not a date", "", "   ", "2026", "19.19.2026", "Innleveringsfrist", "99. januar 2026"],
    )
    def test_unrecognized_returns_none(self, raw):
        assert parse_date(raw) is None

    def test_spelled_norwegian(self):
        assert parse_date("19. januar 2026") == datetime(2026, 1, 19, tzinfo=OSLO)

    def test_dotted(self):
        assert parse_date("01.02.2026") == datetime(2026, 2, 1, tzinfo=OSLO)

    def test_iso_hint_rejects_dotted(self):
        assert parse_date("01.02.2026", hint=LocaleHint.ISO) is None

    def test_none_and_non_strings(self):
        assert parse_date(None) is None
        assert parse_date(12345) is None

    def test_date_object(self):
        assert parse_date(date(2026, 5, 17)) == datetime(2026, 5, 17, tzinfo=OSLO)

    def test_aware_datetime_passthrough(self):
        value = datetime(2026, 5, 17, 8, tzinfo=timezone.utc)
        assert parse_date(value) is value


class TestEnsureUtc:
    """Tests for UTC normalization."""

    def test_naive_is_taken_as_utc(self):
        assert ensure_utc(datetime(2026, 5, 17, 8)) == datetime(2026, 5, 17, 8, tzinfo=timezone.utc)

    def test_out_of_range_after_shift(self):
        value = parse_iso("0001-01-01+01:00")

        assert value is not None
        assert ensure_utc(value) is None


class TestFindDottedDates:
    """Tests for extracting dates from free text."""

    def test_finds_dates_in_order(self):
        text = "Publisert 05.01.2026 Frist 20.02.2026 kl 12"
        assert find_dotted_dates(text) == [
            datetime(2026, 1, 5, tzinfo=OSLO),
            datetime(2026, 2, 20, tzinfo=OSLO),
        ]

    def test_skips_invalid_dates(self):
        assert find_dotted_dates("31.02.2026 og 01.03.2026") == [datetime(2026, 3, 1, tzinfo=OSLO)]
