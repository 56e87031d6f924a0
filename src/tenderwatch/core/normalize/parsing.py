"""
Parsing utilities for normalizing extracted data.

Handles money amounts and text cleanup. Date parsing lives in
:mod:`tenderwatch.core.normalize.dates`.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation


# =============================================================================
# Money Parsing
# =============================================================================


@dataclass
class ParsedMoney:
    """Result of parsing a money string."""

    amount: Decimal | None
    currency: str
    original: str

    @property
    def as_int(self) -> int | None:
        if self.amount is None:
            return None
        return int(self.amount)


CURRENCY_CODES = ("NOK", "EUR", "SEK", "DKK", "USD", "GBP")

CURRENCY_SYMBOLS = {
    "€": "EUR",
    "$": "USD",
    "£": "GBP",
}

# "kr" / "kr." / ",-" suffixes used on Norwegian pages
KRONER_PATTERN = re.compile(r"\bkr\.?|,-", re.IGNORECASE)

# Whitespace (including NBSP) between a digit and a following group of exactly three digits
DIGIT_GROUP_SPACE = re.compile(r"(?<=\d)\s(?=\d{3}(?!\d))")

NOK_AMOUNT_PATTERN = re.compile(r"([\d\s]+(?:\.\d+)?)\s*NOK", re.IGNORECASE)


def parse_money(
    value: str | int | float | Decimal | None,
    default_currency: str = "NOK",
) -> ParsedMoney:
    """Parse a money amount from various formats.

    Handles:
    - Currency codes (NOK, EUR, ...) and symbols
    - Space, NBSP and dot thousands separators (``1 250 000``, ``1.250.000``)
    - Decimal commas (``1 250,50``)
    - K/M suffixes (``500K``, ``1.5M``)

    Args:
        value: String or number to parse
        default_currency: Currency when none is detected

    Returns:
        ParsedMoney with the amount, or amount None when nothing numeric was found
    """
    if value is None:
        return ParsedMoney(amount=None, currency=default_currency, original="")

    if isinstance(value, (int, float, Decimal)):
        return ParsedMoney(
            amount=Decimal(str(value)),
            currency=default_currency,
            original=str(value),
        )

    original = value.strip()
    text = original.upper()

    currency = default_currency
    for code in CURRENCY_CODES:
        if code in text:
            currency = code
            break
    for symbol, code in CURRENCY_SYMBOLS.items():
        if symbol in original:
            currency = code
            break
    if KRONER_PATTERN.search(original):
        currency = "NOK"

    numeric_text = text
    for code in CURRENCY_CODES:
        numeric_text = numeric_text.replace(code, "")
    for symbol in CURRENCY_SYMBOLS:
        numeric_text = numeric_text.replace(symbol, "")
    numeric_text = KRONER_PATTERN.sub("", numeric_text)
    numeric_text = DIGIT_GROUP_SPACE.sub("", numeric_text)

    suffix_match = re.search(r"([\d,.]+)\s*([KM])\b", numeric_text)
    if suffix_match:
        base = _parse_numeric(suffix_match.group(1))
        if base is not None:
            multiplier = 1_000 if suffix_match.group(2) == "K" else 1_000_000
            return ParsedMoney(
                amount=base * multiplier,
                currency=currency,
                original=original,
            )

    number_match = re.search(r"\d[\d,.]*", numeric_text)
    if number_match:
        amount = _parse_numeric(number_match.group())
        if amount is not None:
            return ParsedMoney(amount=amount, currency=currency, original=original)

    return ParsedMoney(amount=None, currency=currency, original=original)


def _parse_numeric(text: str) -> Decimal | None:
    """Parse a numeric string, handling commas and decimals."""
    text = text.strip().rstrip(".,")
    if not text:
        return None

    last_comma = text.rfind(",")
    last_period = text.rfind(".")

    if text.count(".") > 1 and last_comma == -1:
        # 1.250.000
        text = text.replace(".", "")
    elif last_comma > last_period:
        # European format: 1.234,56
        text = text.replace(".", "").replace(",", ".")
    else:
        # US format: 1,234.56
        text = text.replace(",", "")

    try:
        return Decimal(text)
    except InvalidOperation:
        return None


def find_nok_amount(text: str) -> str | None:
    """Find the first ``<number> NOK`` amount in free text.

    Returns:
        The matched amount text including the currency, e.g. ``"500 000 NOK"``
    """
    match = NOK_AMOUNT_PATTERN.search(text)
    if not match or not match.group(1).strip():
        return None
    return f"{' '.join(match.group(1).split())} NOK"


# =============================================================================
# Utility Functions
# =============================================================================


def normalize_whitespace(text: str | None) -> str:
    """Normalize whitespace in text."""
    if text is None:
        return ""
    return " ".join(text.split())


def normalize_title(text: str | None) -> str:
    """Normalize a title for equality comparison.

    Case-folded, NFKC-normalized, whitespace collapsed.
    """
    if not text:
        return ""
    return normalize_whitespace(unicodedata.normalize("NFKC", text)).casefold()


def truncate(text: str | None, limit: int, suffix: str = "") -> str:
    """Cut text to ``limit`` characters, appending ``suffix`` when cut."""
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit] + suffix
