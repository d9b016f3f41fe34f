"""
Backtest window start dates.

Slices {start, start + d, start + 2d, ...} up to the wall clock, d in months.
"""

import calendar
from datetime import date, datetime, time
from typing import List, Optional, Union

from core.errors import InvalidDateError

DateLike = Union[str, date, datetime]


def parse_date(value: DateLike) -> date:
    """Parse YYYY-MM-DD (or an ISO datetime) into a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(raw).date()
    except ValueError as e:
        raise InvalidDateError(f"Cannot parse date '{value}'") from e


def add_months(day: date, months: int) -> date:
    """Calendar month addition; the day is clamped to the target month's length."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def generate_windows(
    start: DateLike,
    months: int,
    now: Optional[datetime] = None
) -> List[date]:
    """
    Generate window start dates from start, stepping ``months`` at a time.

    The start is always included, even if the duration reaches past today.
    A later window is kept only while the window after it would not start
    after ``now``.

    Args:
        start: First window start
        months: Window length in calendar months
        now: Wall clock (defaults to ``datetime.now()``)

    Returns:
        Strictly increasing list of window start dates
    """
    if not isinstance(months, int) or months <= 0:
        raise InvalidDateError(f"Window duration must be a positive number of months, got {months!r}")

    current = parse_date(start)
    now = now or datetime.now()

    windows = []
    while True:
        windows.append(current)
        current = add_months(current, months)
        if datetime.combine(add_months(current, months), time.min) > now:
            break

    return windows


def format_date(day: date) -> str:
    return day.strftime("%Y-%m-%d")
