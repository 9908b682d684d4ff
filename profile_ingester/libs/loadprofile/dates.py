"""
Date/time parsing for meter exports.

Formats are tried as an ordered cascade of rules; each rule either returns
a timestamp or has no opinion, and the first timestamp wins. Timestamps are
naive wall-clock datetimes in the meter's local time.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from .models import DateOrder

MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

# Optional time part shared by every pattern: [ T]H:MM[:SS[.fff]] [AM|PM]
_TIME = r"(?:[ T]+(\d{1,2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?(?:\s*([AaPp][Mm]))?)?"
_END = r"\s*$"

_ISO_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_YMD_DASH = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})" + _TIME + _END)
_YMD_SLASH = re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})" + _TIME + _END)
_NUMERIC_SLASH = re.compile(r"^(\d{1,2})[/.](\d{1,2})[/.](\d{4}|\d{2})(?!\d)" + _TIME + _END)
_NUMERIC_DASH = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4}|\d{2})(?!\d)" + _TIME + _END)
_MONTH_NAME = re.compile(r"^(\d{1,2})[-/ ]([A-Za-z]{3,9})[-/ ](\d{4}|\d{2})(?!\d)" + _TIME + _END)


def expand_year(year: int) -> int:
    """Expand a two-digit year: 51-99 -> 19xx, 00-50 -> 20xx."""
    if year >= 100:
        return year
    return 1900 + year if year > 50 else 2000 + year


@dataclass(frozen=True)
class DateRule:
    name: str
    parse: Callable[[str, DateOrder], datetime | None]


def _build(
    year: int,
    month: int,
    day: int,
    hour: str | None,
    minute: str | None,
    second: str | None,
    meridiem: str | None,
) -> datetime | None:
    h = int(hour or 0)
    m = int(minute or 0)
    s = int(second or 0)

    if meridiem:
        if not 1 <= h <= 12:
            return None
        if meridiem.lower() == "pm" and h != 12:
            h += 12
        elif meridiem.lower() == "am" and h == 12:
            h = 0

    rollover = h == 24 and m == 0 and s == 0
    if rollover:
        h = 0

    try:
        parsed = datetime(expand_year(year), month, day, h, m, s)
    except ValueError:
        return None

    # Some exports label the last interval of the day "24:00"
    return parsed + timedelta(days=1) if rollover else parsed


def _iso(text: str, order: DateOrder) -> datetime | None:
    if not _ISO_PREFIX.match(text):
        return None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed.replace(tzinfo=None)


def _year_first(pattern: re.Pattern[str]) -> Callable[[str, DateOrder], datetime | None]:
    def parse(text: str, order: DateOrder) -> datetime | None:
        match = pattern.match(text)
        if not match:
            return None
        year, month, day, hour, minute, second, meridiem = match.groups()
        return _build(int(year), int(month), int(day), hour, minute, second, meridiem)

    return parse


def _day_or_month_first(pattern: re.Pattern[str]) -> Callable[[str, DateOrder], datetime | None]:
    def parse(text: str, order: DateOrder) -> datetime | None:
        match = pattern.match(text)
        if not match:
            return None
        first, second_part, year, hour, minute, second, meridiem = match.groups()
        if order == DateOrder.MDY:
            month, day = int(first), int(second_part)
        else:
            day, month = int(first), int(second_part)
        return _build(int(year), month, day, hour, minute, second, meridiem)

    return parse


def _month_name(text: str, order: DateOrder) -> datetime | None:
    match = _MONTH_NAME.match(text)
    if not match:
        return None
    day, month_name, year, hour, minute, second, meridiem = match.groups()
    month = MONTHS.get(month_name[:3].lower())
    if month is None:
        return None
    return _build(int(year), month, int(day), hour, minute, second, meridiem)


DATE_RULES: tuple[DateRule, ...] = (
    DateRule("iso8601", _iso),
    DateRule("ymd_dash", _year_first(_YMD_DASH)),
    DateRule("ymd_slash", _year_first(_YMD_SLASH)),
    DateRule("numeric_slash", _day_or_month_first(_NUMERIC_SLASH)),
    DateRule("numeric_dash", _day_or_month_first(_NUMERIC_DASH)),
    DateRule("month_name", _month_name),
)


def _clean(cell: str | None) -> str:
    if not cell:
        return ""
    return cell.strip().strip("\"'").strip()


def parse_timestamp(
    date_str: str | None,
    time_str: str | None = None,
    order: DateOrder = DateOrder.DMY,
) -> datetime | None:
    """
    Parse a date (and optional separate time) into a timestamp.

    Args:
        date_str: Date or combined date-time text
        time_str: Separate time text; midnight is assumed when absent
        order: Hint used only for ambiguous NN/NN/YYYY dates

    Returns:
        Naive datetime, or None when no rule recognises the text
    """
    date_text = _clean(date_str)
    if not date_text:
        return None

    time_text = _clean(time_str)
    combined = f"{date_text} {time_text}" if time_text else date_text

    for rule in DATE_RULES:
        parsed = rule.parse(combined, order)
        if parsed is not None:
            return parsed
    return None
