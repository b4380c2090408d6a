"""Utility functions for the installment loan calculator.

This module provides the date arithmetic used to place installments on the
calendar, the expansion of recurring extra installments into dated entries
and helpers for parsing user input into Python data types. Installment dates
follow two rules: the due day is clamped to the length of the target month
(day 31 in February becomes the 28th or 29th), and a target month that has
already been reached in the current year rolls over into the next year.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
import calendar
from typing import List

from .data_models import DueDate, MonthlyDueDate, RecurringInterval, TermsPerYear

_DUE_DAYS = {
    MonthlyDueDate.FIRST: 1,
    MonthlyDueDate.MID: 15,
    MonthlyDueDate.END: 31,
}

_INTERVAL_DAYS = {
    RecurringInterval.WEEKLY: 7,
    RecurringInterval.BIWEEKLY: 14,
}

_INTERVAL_MONTHS = {
    RecurringInterval.MONTHLY: 1,
    RecurringInterval.BIMONTHLY: 2,
    RecurringInterval.QUARTERLY: 3,
    RecurringInterval.TRIANNUALLY: 4,
    RecurringInterval.BIANNUALLY: 6,
    RecurringInterval.ANNUALLY: 12,
}


def resolve_due_day(due: DueDate) -> int:
    """Return the day of month (1-31) a due date convention refers to."""
    if isinstance(due, MonthlyDueDate):
        return _DUE_DAYS[due]
    day = int(due)
    if not 1 <= day <= 31:
        raise ValueError(f"Due day must be within 1-31; got {due}")
    return day


def clamped_date(year: int, month: int, day: int) -> date:
    """Return ``date(year, month, day)`` with ``day`` clamped to the month length."""
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


def target_month(current: date, months_ahead: int) -> int:
    """Return the calendar month (1-12) ``months_ahead`` months after ``current``."""
    return (current.month - 1 + months_ahead) % 12 + 1


def installment_date_for_target_month(current: date, due: DueDate, month: int) -> date:
    """Return the next installment date falling in ``month``.

    Parameters
    ----------
    current: date
        The date to search forward from.
    due: DueDate
        The due date convention resolving to a day of month.
    month: int
        The calendar month (1-12) the installment falls in.

    Returns
    -------
    date
        The first date strictly after ``current`` in ``month`` on the due
        day. A day that does not exist in the month is clamped to the last
        day of that month.
    """
    day = resolve_due_day(due)
    candidate = clamped_date(current.year, month, day)
    # due today counts as passed, so a yearly interval moves a full year
    if candidate <= current:
        candidate = clamped_date(current.year + 1, month, day)
    return candidate


def installment_date_from_interval(current: date, due: DueDate, terms_per_year: int) -> date:
    """Return the installment date one term after ``current``."""
    step = 12 // TermsPerYear(terms_per_year)
    return installment_date_for_target_month(current, due, target_month(current, step))


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    return clamped_date(year, month, dt.day)


def recurrence_dates(start: date, interval: RecurringInterval, count: int) -> List[date]:
    """Return ``count`` dates starting at ``start`` spaced by ``interval``.

    Month based intervals are always measured from ``start`` so a day clamped
    in a short month does not drift for the following dates.
    """
    if interval in _INTERVAL_DAYS:
        step = timedelta(days=_INTERVAL_DAYS[interval])
        return [start + step * i for i in range(count)]
    months = _INTERVAL_MONTHS[interval]
    return [add_months(start, months * i) for i in range(count)]


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string into a ``date``.

    Raises
    ------
    ValueError
        If the string is not a valid date.
    """
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid date string: {value}") from exc


def parse_due_date(value: str) -> DueDate:
    """Parse ``first``, ``mid``, ``end`` or an explicit day of month."""
    cleaned = value.strip().lower()
    for due in MonthlyDueDate:
        if cleaned == due.value:
            return due
    try:
        day = int(cleaned)
    except ValueError as exc:
        raise ValueError(f"Invalid due date: {value}") from exc
    resolve_due_day(day)
    return day


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. Shorthand ``k``/``m`` suffixes (``"500k"``) are expanded. It
    raises ``ValueError`` if conversion fails.
    """
    cleaned = value.strip().lower().replace(",", "")
    factor = Decimal(1)
    if cleaned.endswith("k"):
        factor = Decimal(1_000)
        cleaned = cleaned[:-1]
    elif cleaned.endswith("m"):
        factor = Decimal(1_000_000)
        cleaned = cleaned[:-1]
    try:
        return Decimal(cleaned) * factor
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
