import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.analytics.engine import AnalyticsEngine
from app.analytics.router import router as analytics_router
from app.config import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.engine = AnalyticsEngine()
    logger.info("Analytics engine started (tz=%s, week_start=%d)", settings.default_tz, settings.week_start)
    try:
        yield
    finally:
        app.state.engine.close()


app = FastAPI(title="GoalAnalytics", version="0.1.0", lifespan=lifespan)
app.include_router(analytics_router)


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "analytics": {
            "ranges": "/analytics/ranges",
            "window": "/analytics/window",
            "compute": "/analytics/compute",
            "update": "/analytics/update",
            "snapshot": "/analytics/snapshot",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
