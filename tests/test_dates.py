"""Tests for src.core.dates."""

from datetime import date, datetime

from src.core.dates import (
    at_time_of,
    day_in_month,
    day_key,
    month_bounds,
    next_month,
    parse_day_key,
    start_of_day,
)


def test_day_key_from_datetime():
    assert day_key(datetime(2024, 3, 5, 23, 59)) == "2024-03-05"


def test_parse_day_key_accepts_iso_datetime():
    assert parse_day_key("2024-03-05") == date(2024, 3, 5)
    assert parse_day_key("2024-03-05T10:00:00") == date(2024, 3, 5)


def test_start_of_day():
    assert start_of_day(datetime(2024, 3, 5, 15, 0)) == datetime(2024, 3, 5)


def test_at_time_of():
    assert at_time_of(date(2024, 4, 1), datetime(2024, 1, 1, 7, 45)) == datetime(2024, 4, 1, 7, 45)


def test_day_in_month_short_month():
    assert day_in_month(2023, 2, 29) is None
    assert day_in_month(2024, 2, 29) == date(2024, 2, 29)


def test_month_helpers():
    assert month_bounds(2024, 4) == (date(2024, 4, 1), date(2024, 4, 30))
    assert next_month(2024, 12) == (2025, 1)
    assert next_month(2024, 1) == (2024, 2)
