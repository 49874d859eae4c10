"""Utility functions for the repayments calculator.

This module provides helpers for parsing user input into Python data types and
for handling dates: adding months, measuring the month difference between two
dates and normalizing ``YYYY-MM`` strings to ``datetime.date`` instances.
"""

from __future__ import annotations

import calendar
from datetime import date
from typing import Tuple


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM`` or ``YYYY-MM-DD`` string into a ``date``.

    Parameters
    ----------
    value: str
        A string in the form ``"YYYY-MM"`` or ``"YYYY-MM-DD"``. When the day
        is omitted the first day of the month is used.

    Returns
    -------
    date
        The parsed date.

    Raises
    ------
    ValueError
        If the string is not a valid date.
    """
    try:
        parts = value.strip().split("-")
        if len(parts) not in (2, 3):
            raise ValueError
        year = int(parts[0])
        month = int(parts[1])
        day = int(parts[2]) if len(parts) == 3 else 1
        return date(year, month, day)
    except (ValueError, AttributeError) as exc:
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
    """Return the number of calendar months from ``start`` to ``end``.

    Only the year and month take part, so 31 Jan to 1 Feb is one month. The
    result is negative when ``end`` lies in an earlier month.
    """
    return (end.year - start.year) * 12 + end.month - start.month


def first_of_month(dt: date) -> date:
    return dt.replace(day=1)


def float_from_str(value: str) -> float:
    """Convert a numeric string into a ``float``.

    Commas are stripped and the shorthand suffixes ``k`` and ``m`` are
    accepted (``"500k"`` is 500 000). Raises ``ValueError`` if conversion
    fails.
    """
    cleaned = str(value).strip().lower().replace(",", "")
    factor = 1.0
    if cleaned.endswith("k"):
        factor = 1_000.0
        cleaned = cleaned[:-1]
    elif cleaned.endswith("m"):
        factor = 1_000_000.0
        cleaned = cleaned[:-1]
    try:
        return float(cleaned) * factor
    except ValueError as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


def parse_lump_sum(value: str) -> Tuple[date, float]:
    """Parse a ``DATE:AMOUNT`` entry such as ``"2030-06:25k"``."""
    parts = value.split(":")
    if len(parts) != 2:
        raise ValueError(f"Lump sum must be in DATE:AMOUNT format; got {value}")
    return parse_date(parts[0]), float_from_str(parts[1])
