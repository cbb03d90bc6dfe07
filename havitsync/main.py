from __future__ import annotations

import logging
from typing import Any

from fastapi import Body, Depends, FastAPI, HTTPException

from . import settings
from .aggregator import has_data
from .dashboard import Dashboard
from .gemini import GeminiClient
from .insights import InsightPipeline, build_prompt
from .models import (
    DailyBucketsResponse,
    HealthScoreResponse,
    InsightsResponse,
    StatusResponse,
    TrackerType,
)
from .store import EntryStore, sample_entries
from .windows import now_local

logger = logging.getLogger(__name__)

app = FastAPI(title="HavitSync Dashboard API", version="0.1.0")

_store = EntryStore(initial=sample_entries(now_local()) if settings.DEMO_MODE else ())
_dashboard = Dashboard(
    _store,
    InsightPipeline(GeminiClient(), api_key=settings.GEMINI_API_KEY),
)


def get_dashboard() -> Dashboard:
    return _dashboard


def tracker_param(tracker: str) -> TrackerType:
    try:
        return TrackerType.parse(tracker)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.on_event("startup")
def _startup() -> None:
    if settings.DEMO_MODE:
        logger.info("Demo mode: seeded sample entries %s", _store.counts())
    _dashboard.pipeline.ensure_client()


@app.get("/api/status", response_model=StatusResponse)
def status(dash: Dashboard = Depends(get_dashboard)) -> StatusResponse:
    return StatusResponse(
        ok=True,
        entryCounts=dash.store.counts(),
        insightsReady=dash.pipeline.is_ready(),
        demoMode=settings.DEMO_MODE,
    )


@app.post("/api/entries/{tracker}", status_code=201)
def add_entry(
    payload: dict[str, Any] = Body(default={}),
    tracker: TrackerType = Depends(tracker_param),
    dash: Dashboard = Depends(get_dashboard),
) -> dict[str, Any]:
    """Log an entry from form input.

    Every field is optional; missing or invalid values take the tracker
    default. The id and timestamp are always assigned server-side.
    """
    entry = dash.store.add(tracker, payload)
    return entry.model_dump(mode="json")


@app.get("/api/entries/{tracker}")
def list_entries(
    tracker: TrackerType = Depends(tracker_param),
    dash: Dashboard = Depends(get_dashboard),
) -> dict[str, Any]:
    return {
        "tracker": tracker.value,
        "entries": [e.model_dump(mode="json") for e in dash.store.entries(tracker)],
    }


@app.get("/api/trackers/{tracker}/daily", response_model=DailyBucketsResponse)
def daily(
    tracker: TrackerType = Depends(tracker_param),
    dash: Dashboard = Depends(get_dashboard),
) -> DailyBucketsResponse:
    buckets = dash.daily_buckets(tracker)
    return DailyBucketsResponse(tracker=tracker, buckets=buckets, hasData=has_data(buckets))


@app.get("/api/trackers/{tracker}/summary")
def summary(
    tracker: TrackerType = Depends(tracker_param),
    dash: Dashboard = Depends(get_dashboard),
) -> dict[str, Any]:
    return {"tracker": tracker.value, "stats": dash.weekly_summary(tracker)}


@app.get("/api/trackers/{tracker}/distribution")
def distribution(
    tracker: TrackerType = Depends(tracker_param),
    dash: Dashboard = Depends(get_dashboard),
) -> dict[str, Any]:
    return {"tracker": tracker.value, "slices": dash.distribution(tracker)}


@app.get("/api/trackers/{tracker}/breakdown")
def breakdown(
    tracker: TrackerType = Depends(tracker_param),
    dash: Dashboard = Depends(get_dashboard),
) -> dict[str, Any]:
    return {"tracker": tracker.value, "slices": dash.breakdown(tracker)}


@app.get("/api/trackers/{tracker}/trend")
def trend(
    tracker: TrackerType = Depends(tracker_param),
    dash: Dashboard = Depends(get_dashboard),
) -> dict[str, Any]:
    return {"tracker": tracker.value, "points": dash.trend(tracker)}


@app.get("/api/health-score", response_model=HealthScoreResponse)
def health_score(dash: Dashboard = Depends(get_dashboard)) -> HealthScoreResponse:
    return HealthScoreResponse(score=dash.health_score())


@app.get("/api/insights", response_model=InsightsResponse)
async def insights(dash: Dashboard = Depends(get_dashboard)) -> InsightsResponse:
    batch = await dash.insights()
    return InsightsResponse(insights=batch.insights, healthScore=dash.health_score())


@app.get("/api/insights/latest", response_model=InsightsResponse)
def latest_insights(dash: Dashboard = Depends(get_dashboard)) -> InsightsResponse:
    return InsightsResponse(insights=dash.latest_insights().insights, healthScore=dash.health_score())


@app.get("/api/insights/prompt")
def insights_prompt(dash: Dashboard = Depends(get_dashboard)) -> dict[str, Any]:
    return {"prompt": build_prompt(dash.recent())}
