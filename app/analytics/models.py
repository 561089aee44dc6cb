"""Goal analytics contract — Pydantic v2 models."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GoalStatus(str, Enum):
    pending = "pending"
    in_progress = "inProgress"
    completed = "completed"
    archived = "archived"


class GoalCategory(str, Enum):
    """Closed category set. Declaration order is the canonical order."""

    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    whats_next = "whatsNext"

    @property
    def display_name(self) -> str:
        return _CATEGORY_NAMES[self][0]

    @property
    def short_name(self) -> str:
        return _CATEGORY_NAMES[self][1]

    @classmethod
    def parse(cls, raw: object) -> GoalCategory | None:
        """Resolve a raw tag to a member. Unknown tags yield None."""
        if isinstance(raw, cls):
            return raw
        try:
            return cls(raw)
        except (TypeError, ValueError):
            return None


_CATEGORY_NAMES: dict[GoalCategory, tuple[str, str]] = {
    GoalCategory.daily: ("Daily Goals", "Today"),
    GoalCategory.weekly: ("Weekly Goals", "This Week"),
    GoalCategory.monthly: ("Monthly Goals", "This Month"),
    GoalCategory.whats_next: ("What's Next?", "Later"),
}


class TimeRange(str, Enum):
    day = "day"
    week = "week"
    month = "month"
    quarter = "quarter"

    @property
    def label(self) -> str:
        return {
            TimeRange.day: "Today",
            TimeRange.week: "This Week",
            TimeRange.month: "This Month",
            TimeRange.quarter: "This Quarter",
        }[self]

    @property
    def days_to_show(self) -> int:
        """Histogram bucket count. Fixed day counts, not calendar-aware."""
        return {
            TimeRange.day: 1,
            TimeRange.week: 7,
            TimeRange.month: 30,
            TimeRange.quarter: 90,
        }[self]


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Goal(BaseModel):
    """Read-only goal record supplied by the storage layer."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    title: str = ""
    category: str = GoalCategory.daily.value  # raw tag, may be outside GoalCategory
    status: GoalStatus = GoalStatus.pending
    completed_at: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("category", mode="before")
    @classmethod
    def _category_raw(cls, value: object) -> str:
        # malformed tags are kept and resolve to no category
        if isinstance(value, GoalCategory):
            return value.value
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("completed_at", "created_at")
    @classmethod
    def _naive_is_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    @property
    def category_tag(self) -> GoalCategory | None:
        return GoalCategory.parse(self.category)


class ResolvedWindow(BaseModel):
    """Half-open [start, end) interval for a time range."""

    model_config = ConfigDict(frozen=True)

    time_range: TimeRange
    start: datetime
    end: datetime

    def contains(self, ts: datetime | None) -> bool:
        if ts is None:
            return False
        return self.start <= ts < self.end


class DayCompletion(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date
    count: int = 0


class CategoryCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: GoalCategory
    count: int = 0


class AnalyticsSnapshot(BaseModel):
    """Result snapshot, replaced whole and never mutated."""

    model_config = ConfigDict(frozen=True)

    current_streak: int = 0
    completion_data: list[DayCompletion] = Field(default_factory=list)
    scoped_completed_count: int = 0
    scoped_completion_rate: float = 0.0
    scoped_category_data: list[CategoryCount] = Field(default_factory=list)

    time_range: TimeRange | None = None
    window: ResolvedWindow | None = None
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ComputeRequest(BaseModel):
    goals: list[Goal] = Field(default_factory=list)
    time_range: TimeRange = TimeRange.week
