# SPDX-License-Identifier: Apache-2.0

"""
Calendar arithmetic for agreement validity periods.

Pure functions over ``datetime.date``. They sit on the render path of every
agreement listing, so malformed input yields the input date back instead of
an exception; persistence callers validate before saving.
"""

import calendar
import math
from datetime import date, timedelta
from numbers import Real
from typing import Optional, Tuple, Union

from ..models.enums import DurationUnit
from .errors import InvalidReferenceMonthError

Amount = Union[int, float]


def last_day_of_month(year: int, month: int) -> int:
    """Number of days in the given month."""
    return calendar.monthrange(year, month)[1]


def add_months(base: date, months: int) -> date:
    """
    Add calendar months preserving the day-of-month.

    When the target month is shorter the day is clamped to its last day,
    so Jan 31 + 1 month is Feb 28 (or Feb 29 in leap years).
    """
    month_index = base.month - 1 + months
    year = base.year + month_index // 12
    month = month_index % 12 + 1
    day = min(base.day, last_day_of_month(year, month))
    return date(year, month, day)


def _normalize_amount(amount) -> Optional[int]:
    """Truncate a finite numeric amount to int, or None when unusable."""
    if isinstance(amount, bool) or not isinstance(amount, Real):
        return None
    if isinstance(amount, float) and not math.isfinite(amount):
        return None
    return int(amount)


def add_duration(base: date, amount: Amount, unit) -> date:
    """
    Add a duration in days, months or years to a date.

    Args:
        base: Starting date
        amount: Number of units; fractional amounts are truncated
        unit: DurationUnit or one of its aliases ("dia", "mes", "ano")

    Returns:
        The shifted date, or ``base`` unchanged when the amount, the unit
        or the resulting date is not usable
    """
    steps = _normalize_amount(amount)
    if not steps:
        return base

    try:
        duration_unit = DurationUnit.parse(unit)
    except ValueError:
        return base

    try:
        if duration_unit == DurationUnit.DAYS:
            return base + timedelta(days=steps)
        if duration_unit == DurationUnit.MONTHS:
            return add_months(base, steps)
        return add_months(base, steps * 12)
    except (OverflowError, ValueError):
        return base


def days_between(start: date, end: date) -> int:
    """Whole days from ``start`` to ``end`` (negative when ``end`` is earlier)."""
    return (end - start).days


def months_elapsed(start: date, end: date) -> int:
    """
    Whole months elapsed between two dates.

    A month only counts once the day-of-month of ``start`` is reached again,
    e.g. 15/01 to 14/03 is one month, 15/01 to 15/03 is two. Never negative.
    """
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return max(0, months)


def parse_reference_month(value: str) -> Tuple[int, int]:
    """
    Parse a ``YYYY-MM`` reference month.

    Raises:
        InvalidReferenceMonthError: If the value is not a zero-padded YYYY-MM month
    """
    if not isinstance(value, str) or len(value) != 7 or value[4] != '-':
        raise InvalidReferenceMonthError(value)
    year_part, month_part = value[:4], value[5:]
    if not (year_part.isdigit() and month_part.isdigit()):
        raise InvalidReferenceMonthError(value)
    year, month = int(year_part), int(month_part)
    if not 1 <= month <= 12 or year < 1:
        raise InvalidReferenceMonthError(value)
    return year, month


def format_reference_month(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def reference_month_for(day: date) -> str:
    """Reference month containing ``day``."""
    return format_reference_month(day.year, day.month)


def next_reference_month(value: str) -> str:
    year, month = parse_reference_month(value)
    if month == 12:
        return format_reference_month(year + 1, 1)
    return format_reference_month(year, month + 1)


def parse_br_date(value: str) -> Optional[date]:
    """Parse a DD/MM/AAAA date as typed in the forms; None when invalid."""
    if not value:
        return None
    parts = value.strip().split('/')
    if len(parts) != 3:
        return None
    try:
        day, month, year = (int(part) for part in parts)
        return date(year, month, day)
    except ValueError:
        return None


def format_br_date(value: Optional[date]) -> str:
    """Format a date as DD/MM/AAAA."""
    return value.strftime('%d/%m/%Y') if value else ""
