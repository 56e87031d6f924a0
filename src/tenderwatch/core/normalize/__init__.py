"""Normalization and canonicalization of extracted data."""

from .canonical import Tender, fallback_id
from .dates import (
    LocaleHint,
    ensure_utc,
    find_dotted_dates,
    parse_date,
    utcnow,
)
from .parsing import (
    ParsedMoney,
    find_nok_amount,
    normalize_title,
    normalize_whitespace,
    parse_money,
    truncate,
)

__all__ = [
    # Canonical
    "Tender",
    "fallback_id",
    # Dates
    "LocaleHint",
    "ensure_utc",
    "find_dotted_dates",
    "parse_date",
    "utcnow",
    # Parsing
    "ParsedMoney",
    "find_nok_amount",
    "normalize_title",
    "normalize_whitespace",
    "parse_money",
    "truncate",
]
