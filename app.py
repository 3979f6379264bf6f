"""FastAPI service exposing notes analytics as JSON.

Serves the engine's cached accessors over a folder of markdown notes
(``NOTES_ANALYTICS_DOCUMENTS_PATH``) and accepts change notifications from
a file watcher so the cache stays fresh.

Deployment: uvicorn app:app --host 127.0.0.1 --port 8204
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from analytics import METRICS, AnalyticsEngine, build_dashboard_payload
from config import settings
from document_source import FolderDocumentSource

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
_engine: AnalyticsEngine | None = None


def get_engine() -> AnalyticsEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        source = FolderDocumentSource(settings.documents_path, settings.document_extensions)
        _engine = AnalyticsEngine(source, settings)
        logger.info("Serving analytics for %s", source.root)
    return _engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _engine is not None:
        _engine.dispose()


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(title="Notes Analytics", lifespan=lifespan)


class ChangeEvent(BaseModel):
    type: str
    path: str


def _require_metric(metric: str) -> str:
    if metric not in METRICS:
        raise HTTPException(status_code=404, detail=f"Unknown metric: {metric}")
    return metric


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health")
@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/api/buckets")
async def api_buckets(
    granularity: str = "day",
    start: date | None = None,
    end: date | None = None,
    folder: str | None = None,
):
    """Bucketed word and file counts, optionally limited to a range or folder."""
    if (start is None) != (end is None):
        raise HTTPException(status_code=422, detail="start and end must be given together")
    date_range = (start, end) if start is not None else None
    return await get_engine().get_buckets(granularity, date_range, folder)


@app.get("/api/trend/{metric}")
async def api_trend(metric: str):
    return await get_engine().get_trend(_require_metric(metric))


@app.get("/api/prediction/{metric}")
async def api_prediction(metric: str):
    return await get_engine().get_prediction(_require_metric(metric))


@app.get("/api/statistics/{metric}")
async def api_statistics(metric: str):
    return await get_engine().get_statistical_summary(_require_metric(metric))


@app.get("/api/correlations")
async def api_correlations():
    return await get_engine().get_correlations()


@app.get("/api/seasonal")
async def api_seasonal():
    return await get_engine().get_seasonal_patterns()


@app.get("/api/insights")
async def api_insights():
    return await get_engine().get_insights()


@app.get("/api/streak")
async def api_streak():
    return await get_engine().get_streak()


@app.get("/api/streak/stats")
async def api_streak_stats():
    return await get_engine().get_streak_stats()


@app.get("/api/calendar")
async def api_calendar(year: int | None = Query(default=None, ge=1, le=9999)):
    return await get_engine().get_activity_calendar(year)


@app.get("/api/summary")
async def api_summary():
    return await get_engine().get_summary()


@app.get("/api/comparison")
async def api_comparison():
    return await get_engine().get_period_comparison()


@app.get("/api/file-sizes")
async def api_file_sizes():
    return await get_engine().get_file_size_stats()


@app.get("/api/cache")
def api_cache():
    engine = get_engine()
    return {**engine.get_cache_stats(), "generation": engine.coordinator.generation}


@app.get("/api/data")
async def api_data():
    """Return the full dashboard JSON payload."""
    return await build_dashboard_payload(get_engine())


@app.get("/api/refresh")
@app.post("/api/refresh")
async def api_refresh():
    """Drop every cached result and rebuild the dashboard payload."""
    engine = get_engine()
    engine.on_settings_changed()
    data = await build_dashboard_payload(engine)
    return {
        "status": "refreshed",
        "generated_at": data["generated_at"],
    }


@app.post("/api/events")
async def api_events(event: ChangeEvent):
    """Accept a create/modify/delete notification for one document."""
    engine = get_engine()
    kind = engine.handle_event(event.type, event.path)
    if kind is None:
        raise HTTPException(status_code=422, detail=f"Unknown event type: {event.type}")
    return {
        "status": "accepted",
        "kind": kind,
        "generation": engine.coordinator.generation,
    }
