import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from livefeed.config import settings
from livefeed.schemas import WatermarkSchema
from livefeed.routers.activity import get_activity_engine
from livefeed.services.engine import ActivityEngine

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(
    engine: ActivityEngine = Depends(get_activity_engine),
) -> JSONResponse:
    db_status = "ok" if await engine.store.ping() else "error"

    scheduler_status = "running" if engine.running else "stopped"
    poller = engine.poller
    aggregator = engine.aggregator

    overall_status = "ok"
    if db_status == "error" or (engine.enabled and not engine.running):
        overall_status = "degraded"

    watermarks = [
        WatermarkSchema(
            source_id=source_id,
            since=since,
            state=poller.states[source_id].value,
        ).model_dump(mode="json")
        for source_id, since in poller.watermarks.items()
    ]

    return JSONResponse({
        "status":          overall_status,
        "db":              db_status,
        "event_store":     settings.EVENT_STORE,
        "scheduler":       scheduler_status,
        "enabled":         engine.enabled,
        "notifications":   len(engine.buffer),
        "admitted_total":  engine.buffer.total_admitted,
        "snapshot":        len(aggregator.snapshot),
        "last_poll_at":    poller.last_tick_at.isoformat() if poller.last_tick_at else None,
        "last_refresh_at": aggregator.last_refresh_at.isoformat() if aggregator.last_refresh_at else None,
        "watermarks":      watermarks,
    })
