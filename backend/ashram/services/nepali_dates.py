"""English <-> Nepali (Bikram Sambat) date helpers used on receipts.

The conversion is approximate: the BS year is the Gregorian year plus
``NEPALI_YEAR_OFFSET`` and month/day numbers are reused as-is. Every receipt
issued so far was dated this way, so the behaviour is kept stable rather than
switched to a calendrically exact table.

Nothing in this module raises for bad input. Unparsable values render as
``"N/A"`` and unexpected formatting failures fall back to an English date.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import NamedTuple

logger = logging.getLogger(__name__)

NEPALI_YEAR_OFFSET = 57
NOT_AVAILABLE = "N/A"

NEPALI_MONTHS: tuple[str, ...] = (
    "बैशाख",
    "जेठ",
    "असार",
    "साउन",
    "भदौ",
    "असोज",
    "कार्तिक",
    "मंसिर",
    "पुष",
    "माघ",
    "फाल्गुन",
    "चैत्र",
)

NEPALI_WEEKDAYS: tuple[str, ...] = (
    "आइतबार",
    "सोमबार",
    "मंगलबार",
    "बुधबार",
    "बिहिबार",
    "शुक्रबार",
    "शनिबार",
)

_DEVANAGARI_DIGITS = str.maketrans("०१२३४५६७८९", "0123456789")
_NEPALI_DATE_RE = re.compile(r"^\s*(\d{1,4})\s*[/-]\s*(\d{1,2})\s*[/-]\s*(\d{1,2})\s*$")

DateLike = date | datetime | str


class NepaliDate(NamedTuple):
    year: int
    month: int
    day: int

    def __str__(self) -> str:
        return f"{self.year}/{self.month:02d}/{self.day:02d}"


def _coerce(value: DateLike | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None


def format_english_date(value: DateLike | None) -> str:
    """Fallback formatter, e.g. ``15 Aug 2024``."""
    moment = _coerce(value)
    if moment is None:
        return NOT_AVAILABLE
    return f"{moment.day} {moment:%b %Y}"


def format_english_datetime(value: DateLike | None) -> str:
    moment = _coerce(value)
    if moment is None:
        return NOT_AVAILABLE
    return f"{moment.day} {moment:%b %Y, %I:%M %p}"


def format_numeric_date(value: DateLike | None) -> str:
    """Day-first numeric date as printed on receipts, e.g. ``15/08/2024``."""
    moment = _coerce(value)
    if moment is None:
        return NOT_AVAILABLE
    return f"{moment:%d/%m/%Y}"


def to_nepali(value: DateLike | None) -> NepaliDate | None:
    moment = _coerce(value)
    if moment is None:
        return None
    return NepaliDate(moment.year + NEPALI_YEAR_OFFSET, moment.month, moment.day)


def to_nepali_string(value: DateLike | None) -> str:
    """Numeric BS date, e.g. ``2081/08/15``."""
    converted = to_nepali(value)
    return str(converted) if converted else NOT_AVAILABLE


def to_nepali_formatted(value: DateLike | None) -> str:
    """BS date with the month name, e.g. ``15 मंसिर 2081``."""
    converted = to_nepali(value)
    if converted is None:
        return NOT_AVAILABLE
    try:
        month_name = NEPALI_MONTHS[converted.month - 1]
        return f"{converted.day} {month_name} {converted.year}"
    except (IndexError, ValueError) as exc:
        logger.warning("nepali_date_format_failed", extra={"value": str(value), "error": str(exc)})
        return format_english_date(value)


def to_nepali_datetime(value: DateLike | None) -> str:
    """BS date plus a 12-hour clock, e.g. ``15 मंसिर 2081, 10:00 AM``."""
    moment = _coerce(value)
    if moment is None:
        return NOT_AVAILABLE
    formatted = to_nepali_formatted(moment)
    try:
        return f"{formatted}, {moment:%I:%M %p}"
    except ValueError as exc:
        logger.warning("nepali_datetime_format_failed", extra={"value": str(value), "error": str(exc)})
        return format_english_datetime(moment)


def to_english(nepali_text: str | None) -> date | None:
    """Parse ``YYYY/MM/DD`` or ``YYYY-MM-DD`` (ASCII or Devanagari digits) back to a Gregorian date."""
    if not nepali_text:
        return None
    match = _NEPALI_DATE_RE.match(str(nepali_text).translate(_DEVANAGARI_DIGITS))
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year - NEPALI_YEAR_OFFSET, month, day)
    except ValueError:
        return None


def is_valid_nepali_date(nepali_text: str | None) -> bool:
    return to_english(nepali_text) is not None


def today_nepali() -> str:
    return to_nepali_string(datetime.now())


def today_nepali_formatted() -> str:
    return to_nepali_formatted(datetime.now())
