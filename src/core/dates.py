"""Calendar-day helpers.

Everything that keys on "a day" goes through here: completion keys,
streak comparisons, recurrence matching.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta


def to_day(value: date | datetime) -> date:
    """Normalize a date or datetime to its local calendar day."""
    if isinstance(value, datetime):
        return value.date()
    return value


def day_key(value: date | datetime) -> str:
    """Return the YYYY-MM-DD key of a date or datetime."""
    return to_day(value).isoformat()


def parse_day_key(key: str) -> date:
    """Parse a YYYY-MM-DD key. Full ISO datetimes are accepted too."""
    if "T" in key:
        return datetime.fromisoformat(key).date()
    return date.fromisoformat(key)


def start_of_day(value: date | datetime) -> datetime:
    return datetime.combine(to_day(value), time.min)


def at_time_of(day: date, template: datetime) -> datetime:
    """Place the template's time-of-day on another calendar day."""
    return datetime.combine(day, template.timetz())


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a month."""
    return date(year, month, 1), date(year, month, days_in_month(year, month))


def next_month(year: int, month: int) -> tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def day_in_month(year: int, month: int, day_of_month: int) -> date | None:
    """The given day-of-month in a month, or None when the month is too short."""
    if day_of_month > days_in_month(year, month):
        return None
    return date(year, month, day_of_month)


def yesterday_of(day: date) -> date:
    return day - timedelta(days=1)
