"""
Date Enumeration
================

Generates the dates a query samples.

Stepping Rules:
    DAILY:   start, start + 1d, start + 2d, ...
    WEEKLY:  start, start + 7d, start + 14d, ...
    MONTHLY: start, start + 1 month, start + 2 months, ...

The range is inclusive: a date equal to ``end`` is included. Monthly dates
are computed from ``start`` (not from the previous date) and clamp the
day-of-month to the length of the target month, so Jan 31 yields Feb 29 in
a leap year and then Mar 31 again.
"""

import calendar
from datetime import date, timedelta
from typing import Iterator, List

from timelapse_engine.models.query import Frequency


_MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

_DAY_STEPS = {
    Frequency.DAILY: 1,
    Frequency.WEEKLY: 7,
}


def add_months(start: date, months: int) -> date:
    """
    Shift a date by whole calendar months.

    Args:
        start: Date to shift
        months: Number of months (may be negative)

    Returns:
        Shifted date, day-of-month clamped to the target month's length
    """
    years, month_index = divmod(start.month - 1 + months, 12)
    year = start.year + years
    month = month_index + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def iter_dates(start: date, end: date, frequency: Frequency) -> Iterator[date]:
    """
    Lazily yield the sampled dates between start and end (inclusive).

    Args:
        start: First date
        end: Last date
        frequency: Sampling frequency

    Yields:
        Dates in strictly increasing order
    """
    if frequency is Frequency.MONTHLY:
        step = 0
        current = start
        while current <= end:
            yield current
            step += 1
            current = add_months(start, step)
        return

    delta = timedelta(days=_DAY_STEPS[frequency])
    current = start
    while current <= end:
        yield current
        current += delta


def enumerate_dates(start: date, end: date, frequency: Frequency) -> List[date]:
    """Sampled dates between start and end (inclusive) as a list."""
    return list(iter_dates(start, end, frequency))


def format_display_label(d: date) -> str:
    """Format a date for display, e.g. ``Jan 1, 2024``."""
    return f"{_MONTH_ABBREVIATIONS[d.month - 1]} {d.day}, {d.year}"
