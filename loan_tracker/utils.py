"""Utility functions for the loan tracker.

This module provides helpers for parsing user input into Python data types and
for calendar-month arithmetic on ``datetime.date`` values. Loan periods are
always whole calendar months, so every date computation in the package goes
through :func:`add_months` and :func:`months_between`.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from typing import Union


def parse_date(value: Union[str, date]) -> date:
    """Parse a ``YYYY-MM-DD`` or ``YYYY-MM`` string into a ``date``.

    Year-month strings are normalized to the first day of the month.
    ``date`` and ``datetime`` instances are passed through (a ``datetime`` is
    truncated to its date).

    Raises
    ------
    ValueError
        If the string is not a valid date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        parts = text.split("-")
        if len(parts) == 2:
            return date(int(parts[0]), int(parts[1]), 1)
        if len(parts) == 3:
            return date(int(parts[0]), int(parts[1]), int(parts[2][:2]))
        raise ValueError
    except Exception as exc:
        raise ValueError(f"Invalid date string: {value}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def months_between(start: date, end: date) -> int:
    """Whole calendar months from ``start`` to ``end``, ignoring the day.

    A loan started on Jan 31 and evaluated on Feb 1 counts one month. The
    result is negative when ``end`` lies in an earlier month than ``start``.
    """
    return (end.year - start.year) * 12 + (end.month - start.month)


def parse_amount(value: Union[str, float, int]) -> float:
    """Parse a numeric string with optional suffixes.

    Accepts plain floats ("500000"), thousands separators ("20,000") and
    shorthand with ``k``/``m`` suffixes (e.g., "500k" meaning 500_000).
    """
    if isinstance(value, (int, float)):
        return float(value)
    text = value.strip().lower().replace(",", "")
    factor = 1.0
    if text.endswith("k"):
        factor = 1_000.0
        text = text[:-1]
    elif text.endswith("m"):
        factor = 1_000_000.0
        text = text[:-1]
    try:
        return float(text) * factor
    except ValueError as exc:
        raise ValueError(f"Invalid amount: {value}") from exc


def date_key(dt: date) -> str:
    """ISO representation used when dates cross the JSON boundary."""
    return dt.isoformat()
