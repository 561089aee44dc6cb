"""Shared fixtures for the test suite."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from app.analytics.engine import AnalyticsEngine
from app.analytics.models import Goal, GoalStatus
from app.main import app

# Fixed reference instant: Wednesday 2026-02-18, mid-afternoon UTC.
NOW = datetime(2026, 2, 18, 15, 30, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_goal(
    completed_at: datetime | None = None,
    status: GoalStatus | str | None = None,
    category: str = "daily",
    title: str = "",
    goal_id: uuid.UUID | None = None,
) -> Goal:
    """Build a goal; status defaults to completed when a completion time is given."""
    if status is None:
        status = GoalStatus.completed if completed_at is not None else GoalStatus.pending
    return Goal(
        id=goal_id or uuid.uuid4(),
        title=title,
        category=category,
        status=status,
        completed_at=completed_at,
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


def goal_payload(goal: Goal) -> dict:
    return goal.model_dump(mode="json")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
async def engine():
    """Engine pinned to NOW in UTC with Monday week start."""
    eng = AnalyticsEngine(tz_name="UTC", week_start=0, max_streak_days=365, clock=lambda: NOW)
    yield eng
    eng.close()


@pytest.fixture()
async def client(engine):
    """ASGI client; the app-wide engine is swapped for the pinned fixture engine."""
    app.state.engine = engine
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
