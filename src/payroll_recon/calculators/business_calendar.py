"""Business day arithmetic over an inclusive period."""

from __future__ import annotations

from collections.abc import Collection, Iterator
from datetime import date, timedelta


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every calendar date from start to end inclusive."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def is_weekday(day: date) -> bool:
    return day.weekday() < 5


def business_days_in_period(start: date, end: date, holidays: Collection[date] = ()) -> int:
    """Count Monday-Friday dates in the period that are not holidays."""
    return sum(1 for day in iter_dates(start, end) if is_weekday(day) and day not in holidays)


def holiday_days_in_period(start: date, end: date, holidays: Collection[date] = ()) -> int:
    """Count holidays in the period that fall on a weekday.

    Weekend holidays are ignored; they never reduce expected work days.
    """
    return sum(1 for day in iter_dates(start, end) if is_weekday(day) and day in holidays)
