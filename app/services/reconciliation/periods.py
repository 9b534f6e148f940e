"""Month arithmetic and month-bucket windows.

All month math uses UTC calendar fields so a payment made late on the last day
of a month in a local timezone never drifts into the next month's bucket.
"""
import calendar
from datetime import date, datetime, timezone
from typing import Any, List, Optional

from app.schemas.dashboard import MonthBucket
from app.schemas.records import parse_date


def utc_today(now: Optional[datetime] = None) -> date:
    """Return today's UTC date."""
    now = now or datetime.now(timezone.utc)
    return parse_date(now)


def month_start(value: date) -> date:
    """Return the first day of the month containing ``value``."""
    return value.replace(day=1)


def add_months(start: date, months: int) -> date:
    """Return the first day of the month ``months`` after the month of ``start``."""
    index = start.year * 12 + (start.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def months_between(start: date, end: date) -> int:
    """Count whole calendar months from the month of ``start`` to that of ``end``."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def format_month_key(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def month_key(value: Any) -> Optional[str]:
    """Return the ``YYYY-MM`` key of a date-like value, or None if it has no date."""
    parsed = parse_date(value)
    if parsed is None:
        return None
    return format_month_key(parsed)


def current_month_start(now: Optional[datetime] = None) -> date:
    """Return the first day of the current UTC month."""
    return month_start(utc_today(now))


def build_month_buckets(now: Optional[datetime] = None, window: int = 12) -> List[MonthBucket]:
    """Return ``window`` ordered month buckets ending at the current UTC month."""
    first = add_months(current_month_start(now), -(window - 1))
    buckets = []
    for offset in range(window):
        month = add_months(first, offset)
        buckets.append(
            MonthBucket(label=calendar.month_abbr[month.month], key=format_month_key(month))
        )
    return buckets


def window_start(now: Optional[datetime] = None, window: int = 12) -> date:
    """Return the first day of the oldest month in the window."""
    return add_months(current_month_start(now), -(window - 1))
