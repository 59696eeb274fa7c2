"""Utility functions for the EMI calculator.

This module provides helpers for parsing user input into Python data types and
for handling dates: adding calendar months, counting days and normalizing
``YYYY-MM-DD`` or ``YYYY-MM`` strings to ``datetime.date`` instances.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation, getcontext
import calendar
from typing import Tuple

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

# Suffixes accepted by ``parse_amount``. Lakh and crore are the usual units
# for Indian home loans.
AMOUNT_SUFFIXES = (
    ("lakh", Decimal("100000")),
    ("cr", Decimal("10000000")),
    ("k", Decimal("1000")),
    ("m", Decimal("1000000")),
    ("l", Decimal("100000")),
)


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` or ``YYYY-MM`` string into a ``date``.

    A year-month string maps to the first day of that month. Anything after
    the day component (e.g. a time in an ISO timestamp) is ignored.

    Raises
    ------
    ValueError
        If the string is not a valid date.
    """
    try:
        parts = value.strip()[:10].split("-")
        if len(parts) < 2:
            raise ValueError
        year = int(parts[0])
        month = int(parts[1])
        day = int(parts[2]) if len(parts) > 2 else 1
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


def days_between(start: date, end: date) -> int:
    """Whole days from ``start`` to ``end`` (negative when ``end`` is earlier)."""
    return (end - start).days


def decimal_from_str(value) -> Decimal:
    """Convert a numeric string (or number) into a ``Decimal``.

    Commas are stripped. Floats go through ``str`` so ``0.1`` stays ``0.1``.
    """
    try:
        cleaned = str(value).replace(",", "").strip()
        result = Decimal(cleaned)
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def parse_amount(value: str) -> Decimal:
    """Parse a currency amount with optional shorthand suffixes.

    Accepts plain numbers (``"4500000"``, ``"45,00,000"``) and suffixes:
    ``k`` (thousand), ``m`` (million), ``l``/``lakh`` and ``cr`` (crore), so
    ``"45l"`` and ``"0.45cr"`` both mean 4,500,000.
    """
    cleaned = str(value).strip().lower().replace(",", "").replace(" ", "")
    factor = Decimal("1")
    for suffix, multiplier in AMOUNT_SUFFIXES:
        if cleaned.endswith(suffix):
            factor = multiplier
            cleaned = cleaned[: -len(suffix)]
            break
    try:
        return decimal_from_str(cleaned) * factor
    except ValueError as exc:
        raise ValueError(f"Invalid amount: {value}") from exc


def parse_dated_value(item: str) -> Tuple[date, str]:
    """Split a ``DATE:VALUE`` option string into its date and raw value."""
    parts = item.split(":")
    if len(parts) != 2:
        raise ValueError(f"Expected DATE:VALUE format; got {item}")
    return parse_date(parts[0]), parts[1].strip()
