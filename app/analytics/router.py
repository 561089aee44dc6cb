"""Analytics HTTP router — stateless compute plus the app-wide engine."""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool

from app.analytics import features, windows
from app.analytics.engine import AnalyticsEngine
from app.analytics.models import AnalyticsSnapshot, ComputeRequest, ResolvedWindow, TimeRange
from app.auth import verify_api_key
from app.config import settings

router = APIRouter(prefix="/analytics", tags=["analytics"])


def get_engine(request: Request) -> AnalyticsEngine:
    return request.app.state.engine


def _parse_instant(value: str | None, name: str) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    try:
        ts = datetime.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid timestamp for '{name}': {value}")
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@router.get("/ranges")
async def ranges_list(
    _: str = Depends(verify_api_key),
) -> list[dict]:
    return [{"id": r.value, "label": r.label, "days_to_show": r.days_to_show} for r in TimeRange]


@router.get("/window", response_model=ResolvedWindow)
async def window_detail(
    _: str = Depends(verify_api_key),
    time_range: TimeRange = Query(default=TimeRange.week, alias="range"),
    at: str | None = Query(default=None, description="Reference instant (ISO 8601, default: now)"),
    tz: str | None = Query(default=None, description="Timezone (e.g. Europe/Berlin)"),
) -> ResolvedWindow:
    now = _parse_instant(at, "at")
    tz_name = tz or settings.default_tz
    try:
        return windows.resolve(time_range, now, tz_name, settings.week_start)
    except (ZoneInfoNotFoundError, ValueError):
        raise HTTPException(status_code=422, detail=f"Unknown timezone: {tz_name}")


# ---------------------------------------------------------------------------
# Stateless computation
# ---------------------------------------------------------------------------


@router.post("/compute", response_model=AnalyticsSnapshot)
async def compute(
    body: ComputeRequest,
    _: str = Depends(verify_api_key),
    at: str | None = Query(default=None, description="Reference instant (ISO 8601, default: now)"),
) -> AnalyticsSnapshot:
    now = _parse_instant(at, "at")
    return await run_in_threadpool(
        features.compute_snapshot,
        body.goals,
        body.time_range,
        now,
        settings.default_tz,
        settings.week_start,
        settings.max_streak_days,
    )


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


@router.post("/update")
async def engine_update(
    body: ComputeRequest,
    engine: AnalyticsEngine = Depends(get_engine),
    _: str = Depends(verify_api_key),
) -> dict:
    task = engine.update(body.goals, body.time_range)
    return {
        "accepted": task is not None,
        "busy": engine.busy,
        "fingerprint": engine.fingerprint,
    }


@router.get("/snapshot", response_model=AnalyticsSnapshot)
async def engine_snapshot(
    engine: AnalyticsEngine = Depends(get_engine),
    _: str = Depends(verify_api_key),
    wait: bool = Query(default=False, description="Wait for the in-flight computation first"),
) -> AnalyticsSnapshot:
    if wait:
        await engine.wait_idle()
    return engine.snapshot
