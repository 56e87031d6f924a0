"""
Date parsing for the formats the tender sources publish.

Every parser returns a timezone-aware datetime or None. Nothing in this
module raises on bad input: an unparsable deadline becomes None on the
record instead of failing the whole fetch.

Supported inputs:
- Dotted Norwegian dates: ``19.01.2026``, ``19.01.2026 12:00``
- Spelled Norwegian dates: ``mandag 19. januar 2026``, ``19. januar 2026 kl. 12:00``
- ISO dates with an offset suffix: ``2026-03-10+01:00``, ``2026-02-07Z``
- ISO datetimes: ``2026-03-10T12:00:00+01:00``, ``2026-03-10 12:00``
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from zoneinfo import ZoneInfo

OSLO = ZoneInfo("Europe/Oslo")


class LocaleHint(str, Enum):
    """Which family of formats to try."""

    AUTO = "auto"
    DOTTED = "dotted"
    SPELLED = "spelled"
    ISO = "iso"


NORWEGIAN_MONTHS: dict[str, int] = {
    "januar": 1,
    "februar": 2,
    "mars": 3,
    "april": 4,
    "mai": 5,
    "juni": 6,
    "juli": 7,
    "august": 8,
    "september": 9,
    "oktober": 10,
    "november": 11,
    "desember": 12,
    # Abbreviations used in compact listings
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "sept": 9,
    "okt": 10,
    "nov": 11,
    "des": 12,
}

DOTTED_PATTERN = re.compile(
    r"(\d{1,2})\.(\d{1,2})\.(\d{4})"
    r"(?:\s*,?\s*(?:kl\.?\s*)?(\d{1,2})[:.](\d{2}))?"
)

ISO_PATTERN = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})"
    r"(?:[T ](\d{2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?)?"
    r"\s*(Z|[+-]\d{2}:?\d{2})?"
)

TIME_TOKEN = re.compile(r"(\d{1,2})[:.](\d{2})")


def _build_datetime(
    year: int,
    month: int,
    day: int,
    hour: int = 0,
    minute: int = 0,
    second: int = 0,
    tz: tzinfo = OSLO,
) -> datetime | None:
    try:
        return datetime(year, month, day, hour, minute, second, tzinfo=tz)
    except ValueError:
        return None


def _parse_offset(raw: str | None) -> tzinfo | None:
    if not raw or raw == "Z":
        return timezone.utc
    sign = -1 if raw[0] == "-" else 1
    digits = raw[1:].replace(":", "")
    hours, minutes = int(digits[:2]), int(digits[2:])
    try:
        return timezone(sign * timedelta(hours=hours, minutes=minutes))
    except ValueError:
        # offsets must lie strictly within 24 hours
        return None


def parse_dotted(raw: str, tz: tzinfo = OSLO) -> datetime | None:
    """Parse ``DD.MM.YYYY`` with an optional ``HH:MM`` time."""
    match = DOTTED_PATTERN.fullmatch(raw.strip())
    if not match:
        return None

    day, month, year = int(match.group(1)), int(match.group(2)), int(match.group(3))
    hour = int(match.group(4)) if match.group(4) else 0
    minute = int(match.group(5)) if match.group(5) else 0
    return _build_datetime(year, month, day, hour, minute, tz=tz)


def parse_spelled(raw: str, tz: tzinfo = OSLO) -> datetime | None:
    """Parse a date with a spelled-out Norwegian month name.

    Weekday names, trailing periods, commas and the ``kl.`` marker are
    ignored. The day must be a 1-2 digit token and the year exactly four
    digits; any other numeric token makes the input ambiguous.
    """
    text = raw.strip().lower()
    if not text:
        return None

    hour = minute = 0
    time_match = TIME_TOKEN.search(text)
    if time_match:
        hour, minute = int(time_match.group(1)), int(time_match.group(2))
        if hour > 23 or minute > 59:
            return None
        text = text[: time_match.start()] + " " + text[time_match.end():]

    tokens = re.sub(r"[.,]", " ", text).split()

    day: int | None = None
    month: int | None = None
    year: int | None = None

    for token in tokens:
        if token.isdigit():
            if len(token) <= 2 and day is None:
                day = int(token)
            elif len(token) == 4 and year is None:
                year = int(token)
            else:
                return None
        elif token in NORWEGIAN_MONTHS and month is None:
            month = NORWEGIAN_MONTHS[token]

    if day is None or month is None or year is None:
        return None
    return _build_datetime(year, month, day, hour, minute, tz=tz)


def parse_iso(raw: str, default_tz: tzinfo = timezone.utc) -> datetime | None:
    """Parse an ISO 8601 date or datetime.

    A date-only value with an offset (``2026-03-10+01:00``) is midnight at
    that offset. Values without an offset are read in ``default_tz``.
    """
    match = ISO_PATTERN.fullmatch(raw.strip())
    if not match:
        return None

    year, month, day = int(match.group(1)), int(match.group(2)), int(match.group(3))
    hour = int(match.group(4)) if match.group(4) else 0
    minute = int(match.group(5)) if match.group(5) else 0
    second = int(match.group(6)) if match.group(6) else 0
    offset = match.group(7)

    tz = _parse_offset(offset) if offset else default_tz
    if tz is None:
        return None
    return _build_datetime(year, month, day, hour, minute, second, tz=tz)


def parse_date(
    raw: str | datetime | date | None,
    hint: LocaleHint = LocaleHint.AUTO,
    tz: tzinfo = OSLO,
) -> datetime | None:
    """Convert a source-specific date representation to an aware datetime.

    Args:
        raw: Raw value from a listing, detail page or API field
        hint: Restrict parsing to one format family
        tz: Timezone for Norwegian local dates without an offset

    Returns:
        Aware datetime, or None if the value isn't a recognizable date
    """
    if raw is None:
        return None

    if isinstance(raw, datetime):
        return raw if raw.tzinfo else raw.replace(tzinfo=tz)
    if isinstance(raw, date):
        return datetime.combine(raw, time.min, tzinfo=tz)
    if not isinstance(raw, str):
        return None

    text = " ".join(raw.split())
    if not text:
        return None

    if hint is LocaleHint.DOTTED:
        return parse_dotted(text, tz)
    if hint is LocaleHint.SPELLED:
        return parse_spelled(text, tz)
    if hint is LocaleHint.ISO:
        return parse_iso(text)

    return parse_iso(text) or parse_dotted(text, tz) or parse_spelled(text, tz)


def find_dotted_dates(text: str, tz: tzinfo = OSLO) -> list[datetime]:
    """Return every valid ``DD.MM.YYYY`` date found in free text, in order."""
    found: list[datetime] = []
    for match in re.finditer(r"\b(\d{2})\.(\d{2})\.(\d{4})\b", text):
        value = _build_datetime(
            int(match.group(3)), int(match.group(2)), int(match.group(1)), tz=tz
        )
        if value is not None:
            found.append(value)
    return found


def ensure_utc(value: datetime | None) -> datetime | None:
    """Normalize an aware (or naive UTC) datetime to UTC.

    Values that fall outside the representable range once shifted to UTC
    (e.g. year 1 at a positive offset) become None.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    try:
        return value.astimezone(timezone.utc)
    except OverflowError:
        return None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
