import asyncio
import logging
from typing import AsyncGenerator, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from livefeed.schemas import ActivityItem, RotationSchema
from livefeed.services.engine import ActivityEngine
from livefeed.services.formatting import describe
from livefeed.services.rotation import RotationCursor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/activity", tags=["activity"])

KEEPALIVE_SECONDS = 15.0


def get_activity_engine(request: Request) -> ActivityEngine:
    return request.app.state.activity_engine


def _rotation(cursor: RotationCursor[ActivityItem]) -> RotationSchema:
    current = cursor.current
    return RotationSchema(
        index=cursor.current_index,
        length=len(cursor),
        current=current,
        text=describe(current) if current is not None else None,
    )


@router.get("/notifications", response_model=list[ActivityItem])
async def list_notifications(
    engine: ActivityEngine = Depends(get_activity_engine),
) -> list[ActivityItem]:
    return engine.notifications


@router.get("/snapshot", response_model=list[ActivityItem])
async def list_snapshot(
    engine: ActivityEngine = Depends(get_activity_engine),
) -> list[ActivityItem]:
    return engine.snapshot


@router.get("/ticker", response_model=RotationSchema)
async def current_ticker(
    engine: ActivityEngine = Depends(get_activity_engine),
) -> RotationSchema:
    return _rotation(engine.ticker)


@router.get("/banner", response_model=RotationSchema)
async def current_banner(
    engine: ActivityEngine = Depends(get_activity_engine),
) -> RotationSchema:
    return _rotation(engine.banner)


@router.get("/stream")
async def stream_activity(
    request: Request,
    max_events: Optional[int] = Query(default=None, ge=1),
    engine: ActivityEngine = Depends(get_activity_engine),
) -> StreamingResponse:
    """Server-Sent Events: one `activity` event per newly admitted item."""
    subscription = engine.buffer.subscribe()

    async def events() -> AsyncGenerator[str, None]:
        sent = 0
        async with subscription:
            while max_events is None or sent < max_events:
                try:
                    item = await asyncio.wait_for(subscription.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    if await request.is_disconnected():
                        break
                    yield ": keepalive\n\n"
                    continue
                yield f"id: {item.id}\nevent: activity\ndata: {item.model_dump_json()}\n\n"
                sent += 1

    return StreamingResponse(events(), media_type="text/event-stream")
