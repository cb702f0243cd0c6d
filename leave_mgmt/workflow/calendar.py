"""
Business-day counting for leave ranges
"""
from datetime import date, timedelta
from typing import Iterable, Iterator, Set

# date.weekday(): Monday=0 ... Sunday=6
DEFAULT_WEEKLY_OFF_DAYS = frozenset({5, 6})


def iter_dates(from_date: date, to_date: date) -> Iterator[date]:
    current = from_date
    while current <= to_date:
        yield current
        current += timedelta(days=1)


def count_business_days(
    from_date: date,
    to_date: date,
    holidays: Iterable[date] = (),
    weekly_off_days: Iterable[int] = DEFAULT_WEEKLY_OFF_DAYS,
) -> int:
    """
    Count working days in the inclusive range [from_date, to_date].

    Weekly-off days and holidays are not counted. Returns 0 when from_date
    is after to_date.
    """
    if from_date > to_date:
        return 0
    holiday_set: Set[date] = set(holidays)
    off_days = set(weekly_off_days)
    return sum(
        1
        for d in iter_dates(from_date, to_date)
        if d.weekday() not in off_days and d not in holiday_set
    )


def ranges_overlap(a_from: date, a_to: date, b_from: date, b_to: date) -> bool:
    return a_from <= b_to and b_from <= a_to
