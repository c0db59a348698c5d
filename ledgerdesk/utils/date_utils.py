"""Date-only (YYYY-MM-DD) calendar arithmetic.

All values are plain ``YYYY-MM-DD`` strings. Fixed-width ISO strings sort the
same way the dates do, so range checks compare the strings directly instead of
re-parsing them into timestamps.
"""

import re
from datetime import date, timedelta
from typing import Optional, Tuple

from ledgerdesk.domain.exceptions import InvalidDateError

DateOnly = str

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date_only(value: DateOnly) -> date:
    """Parse a strict YYYY-MM-DD string into a date"""
    if not isinstance(value, str) or not _DATE_ONLY.match(value):
        raise InvalidDateError(f"Expected YYYY-MM-DD, got {value!r}")
    year, month, day = (int(part) for part in value.split("-"))
    try:
        return date(year, month, day)
    except ValueError as e:
        raise InvalidDateError(f"Not a calendar date: {value!r}") from e


def to_date_only(d: date) -> DateOnly:
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def today_date_only(override: Optional[DateOnly] = None) -> DateOnly:
    """
    Current local calendar date as YYYY-MM-DD.

    This is the only place that reads the clock. Callers pass ``override`` to
    pin "today" (tests, backdated requests); it is validated and returned as is.
    """
    if override is not None:
        parse_date_only(override)
        return override
    return to_date_only(date.today())


def add_days(value: DateOnly, days: int) -> DateOnly:
    """Add N calendar days to a date-only string"""
    return to_date_only(parse_date_only(value) + timedelta(days=days))


def days_between(start: DateOnly, end: DateOnly) -> int:
    """Whole calendar days from start to end (negative when end is earlier)"""
    return (parse_date_only(end) - parse_date_only(start)).days


def week_bounds(as_of: DateOnly) -> Tuple[DateOnly, DateOnly]:
    """
    Monday-Sunday week containing ``as_of``.

    Monday always starts the week, so a Sunday belongs to the week ending on
    that Sunday rather than the next one.
    """
    d = parse_date_only(as_of)
    monday = d - timedelta(days=d.weekday())
    return to_date_only(monday), to_date_only(monday + timedelta(days=6))


def is_same_day(a: Optional[DateOnly], b: Optional[DateOnly]) -> bool:
    return a is not None and b is not None and a == b


def is_within_range(value: DateOnly, start: DateOnly, end: DateOnly) -> bool:
    """Inclusive containment on date-only strings"""
    return start <= value <= end
