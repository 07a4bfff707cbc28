import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler

if TYPE_CHECKING:
    from livefeed.services.engine import ActivityEngine

logger = logging.getLogger(__name__)

UTC = timezone.utc


def create_scheduler(engine: "ActivityEngine") -> AsyncIOScheduler:
    """
    Four independent interval jobs. Poll and refresh also fire once right
    away; the rotation jobs never wait on them.
    """
    scheduler = AsyncIOScheduler(timezone="UTC")
    now = datetime.now(UTC)
    scheduler.add_job(
        engine.poll,
        "interval",
        seconds=engine.poll_interval_ms / 1000,
        id="poll_job",
        next_run_time=now,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.add_job(
        engine.refresh,
        "interval",
        seconds=engine.refresh_interval_ms / 1000,
        id="refresh_job",
        next_run_time=now,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.add_job(
        engine.rotate_ticker,
        "interval",
        seconds=engine.ticker_rotation_interval_ms / 1000,
        id="ticker_rotation_job",
        coalesce=True,
        replace_existing=True,
    )
    scheduler.add_job(
        engine.rotate_banner,
        "interval",
        seconds=engine.banner_rotation_interval_ms / 1000,
        id="banner_rotation_job",
        coalesce=True,
        replace_existing=True,
    )
    return scheduler
