"""Date parsing utilities."""

import re
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Optional

from dateutil import parser as date_parser
from dateutil import tz
from dateutil.relativedelta import relativedelta

EXCEL_EPOCH = date(1899, 12, 30)
# Serial numbers outside this window are not plausible statement dates
EXCEL_SERIAL_MIN = 1
EXCEL_SERIAL_MAX = 2958465

_DAY_FIRST = re.compile(
    r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})(?:[ T](\d{1,2}):(\d{2})(?::(\d{2}))?)?$"
)
_ISO = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[ T](\d{1,2}):(\d{2})(?::(\d{2}))?)?$")
# Two defaults that differ in year, month and day
_SENTINEL_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))

PERIODS = ("this-month", "this-year", "this-week", "last-month", "last-year", "last-week")


def parse_date(date_str: str) -> date:
    """Parse a CLI date string into a date object.

    Accepts absolute dates ("2026-01-15", "January 15, 2026") and the
    relative words "today", "yesterday", "this month", "last month",
    "this year" and "last year".

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "this month": today.replace(day=1),
        "last month": (today - relativedelta(months=1)).replace(day=1),
        "this year": today.replace(month=1, day=1),
        "last year": today.replace(month=1, day=1) - relativedelta(years=1),
    }
    if date_str in relative_dates:
        return relative_dates[date_str]

    try:
        return date_parser.parse(date_str).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def get_date_range(period: str) -> tuple[date, date]:
    """Get start and end dates for a named period.

    Args:
        period: One of this-month, this-year, this-week, last-month, last-year, last-week

    Returns:
        Tuple of (start_date, end_date), both inclusive

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = date.today()
    first_of_month = today.replace(day=1)
    first_of_year = today.replace(month=1, day=1)
    monday = today - timedelta(days=today.weekday())

    if period == "this-month":
        return first_of_month, today
    if period == "this-year":
        return first_of_year, today
    if period == "this-week":
        return monday, today
    if period == "last-month":
        return first_of_month - relativedelta(months=1), first_of_month - timedelta(days=1)
    if period == "last-year":
        return first_of_year - relativedelta(years=1), first_of_year - timedelta(days=1)
    if period == "last-week":
        return monday - timedelta(days=7), monday - timedelta(days=1)

    raise ValueError(f"Unknown period: '{period}'. Supported periods: {', '.join(PERIODS)}")


def get_timezone(name: str) -> tzinfo:
    """Resolve an IANA timezone name.

    Raises:
        ValueError: If the name is unknown
    """
    zone = tz.gettz(name)
    if zone is None:
        raise ValueError(f"Unknown timezone '{name}'")
    return zone


def _to_calendar_day(value: datetime, zone: Optional[tzinfo]) -> date:
    if value.tzinfo is not None and zone is not None:
        value = value.astimezone(zone)
    return value.date()


def _from_match(match: re.Match, day_first: bool) -> datetime:
    groups = match.groups()
    if day_first:
        day, month, year = int(groups[0]), int(groups[1]), int(groups[2])
    else:
        year, month, day = int(groups[0]), int(groups[1]), int(groups[2])
    hour = int(groups[3]) if groups[3] else 0
    minute = int(groups[4]) if groups[4] else 0
    second = int(groups[5]) if groups[5] else 0
    return datetime(year, month, day, hour, minute, second)


def parse_statement_date(value: Any, zone: Optional[tzinfo] = None) -> Optional[date]:
    """Normalize a statement date cell into a calendar day.

    Accepts date/datetime cells, Excel serial numbers and the strings
    dd/mm/yyyy, dd-mm-yyyy and yyyy-mm-dd, each optionally followed by a
    time. Timezone-aware values are converted to ``zone`` before the day is
    taken; naive values are already local to the statement.

    Returns:
        The calendar day, or None for an empty cell

    Raises:
        ValueError: If the cell holds something that is not a date
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return _to_calendar_day(value, zone)
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid date '{value}'")
    if isinstance(value, (int, float)):
        serial = int(value)
        if not EXCEL_SERIAL_MIN <= serial <= EXCEL_SERIAL_MAX:
            raise ValueError(f"Invalid date '{value}'")
        return EXCEL_EPOCH + timedelta(days=serial)

    text = str(value).strip()
    if not text:
        return None

    try:
        match = _DAY_FIRST.match(text)
        if match:
            return _from_match(match, day_first=True).date()
        match = _ISO.match(text)
        if match:
            return _from_match(match, day_first=False).date()
    except ValueError:
        raise ValueError(f"Invalid date '{text}'")

    if re.fullmatch(r"\d+(\.\d+)?", text):
        return parse_statement_date(float(text), zone)

    try:
        parsed = date_parser.parse(text, dayfirst=True, default=_SENTINEL_DEFAULTS[0])
        check = date_parser.parse(text, dayfirst=True, default=_SENTINEL_DEFAULTS[1])
    except (ValueError, OverflowError):
        raise ValueError(f"Invalid date '{text}'")
    # dateutil fills missing parts from the default; a partial date must not
    # depend on when the file is imported
    if (parsed.year, parsed.month, parsed.day) != (check.year, check.month, check.day):
        raise ValueError(f"Incomplete date '{text}'")
    return _to_calendar_day(parsed, zone)
