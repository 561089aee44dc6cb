"""Scoped window resolution — calendar-aligned [start, end) intervals.

Day boundaries are built from local calendar dates in the configured
timezone, so a DST transition day is 23 or 25 hours long rather than a
fixed 24h offset.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from app.analytics.models import ResolvedWindow, TimeRange


def _aware(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def local_date(ts: datetime, tz: ZoneInfo) -> date:
    """Calendar day of `ts` as seen in `tz`."""
    return _aware(ts).astimezone(tz).date()


def start_of(day: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Half-open [midnight, next midnight) for a local calendar day."""
    return start_of(day, tz), start_of(day + timedelta(days=1), tz)


def add_months(day: date, months: int) -> date:
    """Calendar-aware month addition; the day is clamped to the target month length."""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    _, last = calendar.monthrange(year, month)
    return date(year, month, min(day.day, last))


def quarter_start_month(month: int) -> int:
    return ((month - 1) // 3) * 3 + 1


def resolve(
    time_range: TimeRange,
    now: datetime,
    tz_name: str = "UTC",
    week_start: int = 0,
) -> ResolvedWindow:
    """Resolve a time range to its calendar-aligned window around `now`.

    - day: local midnight → +1 day
    - week: first day of the week containing `now` (0=Monday … 6=Sunday) → +7 days
    - month: first of the month → +1 calendar month
    - quarter: first of the quarter's first month → +3 calendar months
    """
    tz = ZoneInfo(tz_name)
    today = local_date(now, tz)

    if time_range == TimeRange.day:
        first = today
        last = today + timedelta(days=1)
    elif time_range == TimeRange.week:
        offset = (today.weekday() - week_start) % 7
        first = today - timedelta(days=offset)
        last = first + timedelta(days=7)
    elif time_range == TimeRange.month:
        first = today.replace(day=1)
        last = add_months(first, 1)
    elif time_range == TimeRange.quarter:
        first = date(today.year, quarter_start_month(today.month), 1)
        last = add_months(first, 3)
    else:
        raise ValueError(f"Unknown time range: {time_range}")

    return ResolvedWindow(time_range=time_range, start=start_of(first, tz), end=start_of(last, tz))
