"""
Ops endpoints: manual triggers and monitoring.
Mounted at /ops/
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from livefeed.routers.activity import get_activity_engine
from livefeed.schemas import OpsLogEntrySchema
from livefeed.services.engine import ActivityEngine
from livefeed.services.ops_log import OPS_LOG, log_event

router = APIRouter(prefix="/ops", tags=["ops"])
logger = logging.getLogger(__name__)


@router.post("/poll")
async def trigger_poll(engine: ActivityEngine = Depends(get_activity_engine)):
    admitted = await engine.poll()
    log_event("info", "system", f"Manual poll: {len(admitted)} admitted", count=len(admitted))
    return JSONResponse({
        "admitted":      len(admitted),
        "notifications": len(engine.buffer),
    })


@router.post("/refresh")
async def trigger_refresh(engine: ActivityEngine = Depends(get_activity_engine)):
    snapshot = await engine.refresh()
    log_event("info", "system", f"Manual refresh: {len(snapshot)} items", count=len(snapshot))
    return JSONResponse({"snapshot": len(snapshot)})


@router.get("/log", response_model=list[OpsLogEntrySchema])
async def ops_log(
    category: Optional[str] = None,
    source_id: Optional[str] = None,
    level: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=200),
):
    return OPS_LOG.entries(category=category, source_id=source_id, level=level, limit=limit)
