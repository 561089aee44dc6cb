"""Pure stateless analytics functions — math only, never raises on well-formed goals."""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from app.analytics import windows
from app.analytics.models import (
    AnalyticsSnapshot,
    CategoryCount,
    DayCompletion,
    Goal,
    GoalCategory,
    GoalStatus,
    ResolvedWindow,
    TimeRange,
)

MAX_STREAK_DAYS = 365


def _completed_between(goal: Goal, start: datetime, end: datetime) -> bool:
    ts = goal.completed_at
    return ts is not None and start <= ts < end


def _count_completed_between(goals: Sequence[Goal], start: datetime, end: datetime) -> int:
    return sum(1 for g in goals if _completed_between(g, start, end))


def _scoped_completed(goals: Sequence[Goal], window: ResolvedWindow) -> list[Goal]:
    return [g for g in goals if g.status == GoalStatus.completed and window.contains(g.completed_at)]


# ---------------------------------------------------------------------------
# Fingerprint
# ---------------------------------------------------------------------------

def fingerprint(goals: Sequence[Goal]) -> str:
    """Opaque digest of the full goal collection content, order-sensitive."""
    digest = hashlib.blake2b(digest_size=16)
    for goal in goals:
        digest.update(goal.model_dump_json().encode("utf-8"))
        digest.update(b"\x1e")
    return digest.hexdigest()


# ---------------------------------------------------------------------------
# Streak
# ---------------------------------------------------------------------------

def streak(
    goals: Sequence[Goal],
    now: datetime,
    tz_name: str = "UTC",
    max_days: int = MAX_STREAK_DAYS,
) -> int:
    """Consecutive days with at least one completion, walking back from today.

    An empty today is skipped once (grace) while the count is still zero, so
    a streak that ended yesterday is still reported as alive.
    """
    tz = ZoneInfo(tz_name)
    day = windows.local_date(now, tz)
    count = 0
    grace_used = False

    while count < max_days:
        start, end = windows.day_bounds(day, tz)
        if any(_completed_between(g, start, end) for g in goals):
            count += 1
        elif count == 0 and not grace_used:
            grace_used = True
        else:
            break
        day -= timedelta(days=1)

    return count


# ---------------------------------------------------------------------------
# Histogram (rolling trailing window)
# ---------------------------------------------------------------------------

def histogram(
    goals: Sequence[Goal],
    time_range: TimeRange,
    now: datetime,
    tz_name: str = "UTC",
) -> list[DayCompletion]:
    """Per-day completion counts for the trailing `days_to_show` days, oldest first."""
    tz = ZoneInfo(tz_name)
    today = windows.local_date(now, tz)
    data: list[DayCompletion] = []
    for i in reversed(range(time_range.days_to_show)):
        day = today - timedelta(days=i)
        start, end = windows.day_bounds(day, tz)
        data.append(DayCompletion(day=day, count=_count_completed_between(goals, start, end)))
    return data


# ---------------------------------------------------------------------------
# Scoped aggregates (calendar-aligned window)
# ---------------------------------------------------------------------------

def scoped_completed_count(goals: Sequence[Goal], window: ResolvedWindow) -> int:
    """Goals in state completed whose completion time lies in the window."""
    return len(_scoped_completed(goals, window))


def completion_rate(goals: Sequence[Goal], scoped_count: int) -> float:
    """scoped / (open + scoped), 0.0 when both are zero.

    Open goals (neither archived nor completed) are counted regardless of the
    window; this keeps the rate stable for low-volume windows.
    """
    active = sum(1 for g in goals if g.status not in (GoalStatus.archived, GoalStatus.completed))
    total = active + scoped_count
    if total <= 0:
        return 0.0
    return min(max(scoped_count / total, 0.0), 1.0)


def category_breakdown(goals: Sequence[Goal], window: ResolvedWindow) -> list[CategoryCount]:
    """One entry per GoalCategory in canonical order. Unknown tags match nothing."""
    counts: dict[GoalCategory, int] = {c: 0 for c in GoalCategory}
    for goal in _scoped_completed(goals, window):
        tag = goal.category_tag
        if tag is not None:
            counts[tag] += 1
    return [CategoryCount(category=c, count=n) for c, n in counts.items()]


# ---------------------------------------------------------------------------
# Full snapshot
# ---------------------------------------------------------------------------

def compute_snapshot(
    goals: Sequence[Goal],
    time_range: TimeRange,
    now: datetime,
    tz_name: str = "UTC",
    week_start: int = 0,
    max_days: int = MAX_STREAK_DAYS,
    should_cancel: Callable[[], bool] | None = None,
) -> AnalyticsSnapshot | None:
    """Run every calculator over one goal snapshot.

    `should_cancel` is polled before each stage; returns None once it is true.
    """
    cancelled = should_cancel or (lambda: False)

    if cancelled():
        return None
    window = windows.resolve(time_range, now, tz_name, week_start)

    if cancelled():
        return None
    current_streak = streak(goals, now, tz_name, max_days)

    if cancelled():
        return None
    completion_data = histogram(goals, time_range, now, tz_name)

    if cancelled():
        return None
    scoped = scoped_completed_count(goals, window)
    rate = completion_rate(goals, scoped)

    if cancelled():
        return None
    categories = category_breakdown(goals, window)

    return AnalyticsSnapshot(
        current_streak=current_streak,
        completion_data=completion_data,
        scoped_completed_count=scoped,
        scoped_completion_rate=rate,
        scoped_category_data=categories,
        time_range=time_range,
        window=window,
    )
