"""Calendar arithmetic for recurrence expansion.

Pure functions only: month-end clamping, nth-weekday-of-month resolution and
the closed set of step functions the occurrence generator advances with.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

# A month never holds more than five of any weekday
MAX_WEEKDAY_ORDINAL = 5


def last_day_of_month(year: int, month: int) -> int:
    """Return the number of days in the given month (leap-year aware)."""
    return calendar.monthrange(year, month)[1]


def clamp_day_of_month(day: int, reference_date: date) -> date:
    """Place ``day`` in the month of ``reference_date``, clamped to month length.

    >>> clamp_day_of_month(31, date(2023, 2, 10))
    datetime.date(2023, 2, 28)
    >>> clamp_day_of_month(29, date(2024, 2, 1))
    datetime.date(2024, 2, 29)
    """
    last = last_day_of_month(reference_date.year, reference_date.month)
    return reference_date.replace(day=min(day, last))


def nth_weekday_occurrence_index(value: date) -> int:
    """Return which occurrence of its weekday ``value`` is within its month (1-5).

    >>> nth_weekday_occurrence_index(date(2024, 9, 30))  # 5th Monday
    5
    """
    return (value.day - 1) // 7 + 1


def nth_weekday_of_month(year: int, month: int, weekday: int, ordinal: int) -> date:
    """Return the ``ordinal``-th ``weekday`` of a month.

    If the month has fewer than ``ordinal`` such weekdays, the last one in the
    month is returned instead; the result never rolls into the next month.

    Args:
        year: Calendar year
        month: Calendar month (1-12)
        weekday: Python weekday number (Monday=0 ... Sunday=6)
        ordinal: 1-based occurrence index (1-5)

    Returns:
        Date of the matching weekday inside the month
    """
    if not 1 <= ordinal <= MAX_WEEKDAY_ORDINAL:
        raise ValueError(f"ordinal must be between 1 and {MAX_WEEKDAY_ORDINAL}, got {ordinal}")

    first = date(year, month, 1)
    first_match = first + timedelta(days=(weekday - first.weekday()) % 7)
    candidate = first_match + timedelta(weeks=ordinal - 1)
    while candidate.month != month:
        candidate -= timedelta(weeks=1)
    return candidate


# Step functions, one per frequency unit.


def add_days(start: date, amount: int) -> date:
    return start + timedelta(days=amount)


def add_weeks(start: date, amount: int) -> date:
    return start + timedelta(weeks=amount)


def add_months(start: date, amount: int) -> date:
    """Advance by whole months; the day is clamped to the target month's length."""
    return start + relativedelta(months=amount)


def add_years(start: date, amount: int) -> date:
    """Advance by whole years; Feb 29 lands on Feb 28 in non-leap years."""
    return start + relativedelta(years=amount)
