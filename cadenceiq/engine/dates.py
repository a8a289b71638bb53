"""Calendar-day date math.

Local clock, day granularity. Times of day are carried along but
never compared.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Union

DateLike = Union[date, datetime]


def now() -> datetime:
    """Current local time (the store's default clock)."""
    return datetime.now()


def add_days(start: datetime, days: int) -> datetime:
    """Return start shifted by a whole number of calendar days."""
    return start + timedelta(days=days)


def as_date(value: DateLike) -> date:
    """Strip the time component, if any."""
    if isinstance(value, datetime):
        return value.date()
    return value


def same_day(a: DateLike, b: DateLike) -> bool:
    """True if both values fall on the same year/month/day."""
    return as_date(a) == as_date(b)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of a month.

    Args:
        year: Four-digit year
        month: 1-12

    Returns:
        (month_start, month_end), both inclusive
    """
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)
