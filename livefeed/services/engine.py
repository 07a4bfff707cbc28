import logging
import random
from typing import Sequence

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from livefeed.config import settings
from livefeed.schemas import ActivityItem
from livefeed.services.catalog import INCREMENTAL_SOURCES, SNAPSHOT_SOURCES, SourceDescriptor
from livefeed.services.event_store import EventStore
from livefeed.services.notification_buffer import Listener
from livefeed.services.ops_log import log_event
from livefeed.services.poller import WatermarkPoller
from livefeed.services.rotation import RotationCursor
from livefeed.services.scheduler import create_scheduler
from livefeed.services.snapshot import SnapshotAggregator

logger = logging.getLogger(__name__)


class ActivityEngine:
    """
    Owns one poller, one snapshot aggregator and the two rotation cursors
    (ticker over the notification buffer, banner over the shuffled snapshot),
    plus the scheduler that drives them.
    """

    def __init__(
        self,
        store: EventStore,
        *,
        enabled: bool | None = None,
        poll_interval_ms: int | None = None,
        refresh_interval_ms: int | None = None,
        ticker_rotation_interval_ms: int | None = None,
        banner_rotation_interval_ms: int | None = None,
        max_notifications: int | None = None,
        top_k: int | None = None,
        on_new_activity: Listener | None = None,
        incremental_sources: Sequence[SourceDescriptor] = INCREMENTAL_SOURCES,
        snapshot_sources: Sequence[SourceDescriptor] = SNAPSHOT_SOURCES,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.enabled = settings.ENABLED if enabled is None else enabled
        self.poll_interval_ms = (
            settings.POLL_INTERVAL_MS if poll_interval_ms is None else poll_interval_ms
        )
        self.refresh_interval_ms = (
            settings.REFRESH_INTERVAL_MS if refresh_interval_ms is None else refresh_interval_ms
        )
        self.ticker_rotation_interval_ms = (
            settings.TICKER_ROTATION_INTERVAL_MS
            if ticker_rotation_interval_ms is None
            else ticker_rotation_interval_ms
        )
        self.banner_rotation_interval_ms = (
            settings.BANNER_ROTATION_INTERVAL_MS
            if banner_rotation_interval_ms is None
            else banner_rotation_interval_ms
        )
        rng = rng or random.Random()

        self.poller = WatermarkPoller(
            store,
            incremental_sources,
            max_notifications=max_notifications,
            on_new_activity=on_new_activity,
            enabled=self.enabled,
            rng=rng,
        )
        self.aggregator = SnapshotAggregator(
            store,
            snapshot_sources,
            top_k=top_k,
            enabled=self.enabled,
            rng=rng,
        )
        self.ticker: RotationCursor[ActivityItem] = RotationCursor()
        self.banner: RotationCursor[ActivityItem] = RotationCursor()
        self.scheduler: AsyncIOScheduler | None = None
        self._disposed = False

    @property
    def buffer(self):
        return self.poller.buffer

    @property
    def notifications(self) -> list[ActivityItem]:
        return self.poller.notifications

    @property
    def snapshot(self) -> list[ActivityItem]:
        return list(self.aggregator.snapshot)

    @property
    def running(self) -> bool:
        return bool(self.scheduler and self.scheduler.running)

    async def poll(self) -> list[ActivityItem]:
        admitted = await self.poller.tick()
        if admitted and not self._disposed:
            self.ticker.replace(self.poller.notifications)
        return admitted

    async def refresh(self) -> list[ActivityItem]:
        snapshot = await self.aggregator.refresh()
        if not self._disposed:
            self.banner.replace(snapshot)
        return snapshot

    async def rotate_ticker(self) -> ActivityItem | None:
        return self.ticker.advance()

    async def rotate_banner(self) -> ActivityItem | None:
        return self.banner.advance()

    def start(self) -> None:
        if not self.enabled:
            logger.info("Activity engine disabled; no timers started")
            return
        if self._disposed:
            raise RuntimeError("Cannot start a disposed activity engine")
        if self.running:
            return
        self.scheduler = create_scheduler(self)
        self.scheduler.start()
        logger.info(
            "Activity engine started (poll=%dms refresh=%dms ticker=%dms banner=%dms)",
            self.poll_interval_ms,
            self.refresh_interval_ms,
            self.ticker_rotation_interval_ms,
            self.banner_rotation_interval_ms,
        )
        log_event("info", "system", "Activity engine started")

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self.poller.dispose()
        self.aggregator.dispose()
        logger.info("Activity engine disposed")
        log_event("info", "system", "Activity engine disposed")
