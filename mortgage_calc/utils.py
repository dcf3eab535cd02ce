"""Utility functions for the mortgage calculator.

This module provides helpers for parsing user input into Python data types and
for handling dates, including adding months and normalizing year-month strings
to ``datetime.date`` instances. Missing or blank numeric fields are treated as
zero here, before any value reaches the engines.
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal, InvalidOperation, getcontext
from typing import Optional, Union

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

Number = Union[Decimal, int, float, str]


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Raises
    ------
    ValueError
        If the string is not a valid year-month.
    """
    try:
        parts = ym.split("-")
        if len(parts) < 2:
            raise ValueError
        return date(int(parts[0]), int(parts[1]), 1)
    except (ValueError, AttributeError) as exc:
        raise ValueError(f"Invalid year-month string: {ym}") from exc


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
    """Whole calendar months from ``start`` to ``end``, ignoring the day."""
    return (end.year - start.year) * 12 + end.month - start.month


def to_decimal(value: Optional[Number]) -> Decimal:
    """Convert a user-supplied amount into a ``Decimal``.

    ``None`` and blank strings become zero. Commas are stripped so formatted
    amounts such as ``"1,250,000"`` are accepted. Floats go through ``str`` to
    avoid binary representation noise.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value}")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    cleaned = str(value).replace(",", "").strip()
    if not cleaned:
        return Decimal("0")
    try:
        result = Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def parse_amount(value: str) -> Decimal:
    """Parse a monetary amount with optional ``k``/``m`` suffixes.

    Accepts plain numbers ("500000") and shorthand such as "500k" (500 000) or
    "1.2m" (1 200 000).
    """
    text = value.strip().lower().replace(",", "")
    factor = Decimal("1")
    if text.endswith("k"):
        factor = Decimal("1000")
        text = text[:-1]
    elif text.endswith("m"):
        factor = Decimal("1000000")
        text = text[:-1]
    try:
        return to_decimal(text) * factor
    except ValueError as exc:
        raise ValueError(f"Invalid amount: {value}") from exc


def parse_percent(value: str) -> Decimal:
    """Parse an annual percentage such as ``"3.5"`` or ``"3.5%"``."""
    text = value.strip()
    if text.endswith("%"):
        text = text[:-1]
    try:
        return to_decimal(text)
    except ValueError as exc:
        raise ValueError(f"Invalid percentage: {value}") from exc


def format_rate(rate: Decimal) -> str:
    """Render an annual rate without trailing zeros, e.g. ``Decimal("4.00")`` -> ``"4%"``."""
    normalized = to_decimal(rate).normalize()
    if normalized == 0:
        return "0%"
    return f"{normalized:f}%"
