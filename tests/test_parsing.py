"""Tests for text and money parsing helpers."""

from decimal import Decimal

from tenderwatch.core.normalize.canonical import Tender, fallback_id
from tenderwatch.core.normalize.parsing import (
    find_nok_amount,
    normalize_title,
    parse_money,
    truncate,
)
from tenderwatch.core.config.models import Source


class TestParseMoney:
    """Tests for parse_money."""

    def test_space_grouped_nok(self):
        result = parse_money("1 250 000 NOK")
        assert result.amount == Decimal("1250000")
        assert result.currency == "NOK"

    def test_dot_grouped_kroner(self):
        result = parse_money("1.250.000 kr")
        assert result.as_int == 1250000
        assert result.currency == "NOK"

    def test_decimal_comma(self):
        assert parse_money("1 250,50").amount == Decimal("1250.50")

    def test_k_suffix(self):
        assert parse_money("500K").as_int == 500000

    def test_euro_symbol(self):
        result = parse_money("€ 2,500.00")
        assert result.currency == "EUR"
        assert result.amount == Decimal("2500.00")

    def test_no_number(self):
        result = parse_money("Ikke oppgitt")
        assert result.amount is None
        assert result.as_int is None


class TestFindNokAmount:
    """Tests for NOK amounts embedded in card text."""

    def test_finds_grouped_amount(self):
        assert find_nok_amount("Anslått verdi 500 000 NOK ekskl. mva") == "500 000 NOK"

    def test_missing(self):
        assert find_nok_amount("Ingen verdi oppgitt") is None


class TestTitles:
    """Tests for title normalization and derived ids."""

    def test_normalize_title_casefold_and_whitespace(self):
        assert normalize_title("  Maling   av SKOLE ") == "maling av skole"

    def test_fallback_id_is_deterministic(self):
        first = fallback_id(Source.DOFFIN, "Maling av skole")
        second = fallback_id(Source.DOFFIN, "maling  av Skole")
        assert first == second
        assert first.startswith("doffin_")

    def test_fallback_id_differs_by_title(self):
        assert fallback_id(Source.DOFFIN, "A") != fallback_id(Source.DOFFIN, "B")

    def test_truncate(self):
        assert truncate("abcdef", 3, "...") == "abc..."
        assert truncate("abc", 3, "...") == "abc"


class TestTender:
    """Tests for the canonical record."""

    def test_title_whitespace_collapsed(self):
        tender = Tender(id="x", title="  Nytt \n tak ", source=Source.TED)
        assert tender.title == "Nytt tak"

    def test_to_dict_serializes_dates(self):
        tender = Tender(id="x", title="T", source=Source.TED)
        data = tender.to_dict()
        assert data["source"] == "ted"
        assert data["deadline"] is None
        assert isinstance(data["scraped_at"], str)
