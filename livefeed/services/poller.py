import asyncio
import logging
import random
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Sequence

from livefeed.config import settings
from livefeed.schemas import ActivityItem
from livefeed.services.catalog import INCREMENTAL_SOURCES, SourceDescriptor
from livefeed.services.deduplication import SeenIndex
from livefeed.services.event_store import EventStore
from livefeed.services.normalizer import normalize_rows
from livefeed.services.notification_buffer import Listener, NotificationBuffer
from livefeed.services.ops_log import log_event

logger = logging.getLogger(__name__)


class SourceState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    MERGING = "merging"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WatermarkPoller:
    """
    Incremental fan-out poller feeding the notification buffer.

    Each tick reads, for every source in parallel, the rows newer than that
    source's watermark; new items are admitted oldest first, deduplicated by
    composite id, and every watermark then moves to the tick time.
    """

    def __init__(
        self,
        store: EventStore,
        sources: Sequence[SourceDescriptor] = INCREMENTAL_SOURCES,
        *,
        buffer: NotificationBuffer | None = None,
        max_notifications: int | None = None,
        on_new_activity: Listener | None = None,
        seen_index: SeenIndex | None = None,
        lookback: timedelta | None = None,
        enabled: bool = True,
        clock: Callable[[], datetime] = utcnow,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.sources = tuple(sources)
        self.enabled = enabled
        self._clock = clock
        self._rng = rng or random.Random()
        self._disposed = False

        if max_notifications is None:
            max_notifications = settings.MAX_NOTIFICATIONS
        self.buffer = buffer if buffer is not None else NotificationBuffer(max_notifications)
        if on_new_activity is not None:
            self.buffer.add_listener(on_new_activity)

        if seen_index is None:
            capacity = settings.SEEN_INDEX_CAPACITY or max(
                500, self.buffer.capacity * len(self.sources) * 10
            )
            seen_index = SeenIndex(capacity=capacity, ttl_seconds=settings.SEEN_INDEX_TTL_SECONDS)
        self.seen = seen_index

        if lookback is None:
            lookback = timedelta(minutes=settings.INITIAL_LOOKBACK_MINUTES)
        start = self._clock() - lookback
        self.watermarks: dict[str, datetime] = {s.source_id: start for s in self.sources}
        self.states: dict[str, SourceState] = {s.source_id: SourceState.IDLE for s in self.sources}
        self.last_tick_at: datetime | None = None

    @property
    def notifications(self) -> list[ActivityItem]:
        return self.buffer.snapshot()

    @property
    def disposed(self) -> bool:
        return self._disposed

    async def tick(self) -> list[ActivityItem]:
        """Run one poll; returns the items admitted to the buffer."""
        if not self.enabled or self._disposed:
            return []

        tick_time = self._clock()
        try:
            batches = await asyncio.gather(*(self._fetch(source) for source in self.sources))
        except Exception as exc:
            logger.error("Poll tick failed: %s", exc, exc_info=True)
            log_event("error", "poll", f"Poll tick failed — {exc}")
            self._reset_states()
            return []

        if self._disposed:
            logger.debug("Poller disposed mid-tick, discarding %d batches", len(batches))
            return []

        for source_id in self.states:
            self.states[source_id] = SourceState.MERGING
        admitted = self._admit([item for batch in batches for item in batch])

        for source_id in self.watermarks:
            self.watermarks[source_id] = tick_time
        self._reset_states()
        self.last_tick_at = tick_time

        if admitted:
            logger.info("Poll tick admitted %d new activities", len(admitted))
            log_event(
                "success", "poll",
                f"{len(admitted)} new activit{'ies' if len(admitted) != 1 else 'y'}",
                count=len(admitted),
            )
        else:
            logger.debug("Poll tick: no new activity")
        return admitted

    async def _fetch(self, source: SourceDescriptor) -> list[ActivityItem]:
        self.states[source.source_id] = SourceState.FETCHING
        try:
            rows = await self.store.fetch(
                source, since=self.watermarks[source.source_id], limit=source.limit
            )
        except Exception as exc:
            logger.warning("Source %s fetch failed: %s", source.source_id, exc)
            log_event(
                "warn", "source", f"{source.source_id}: fetch failed — {exc}",
                source_id=source.source_id,
            )
            rows = []
        return normalize_rows(source, rows, self._rng)

    def _admit(self, items: list[ActivityItem]) -> list[ActivityItem]:
        admitted = []
        for item in sorted(items, key=lambda i: i.timestamp):
            if item.id in self.seen:
                continue
            self.seen.add(item.id)
            self.buffer.append(item)
            admitted.append(item)
        return admitted

    def _reset_states(self) -> None:
        for source_id in self.states:
            self.states[source_id] = SourceState.IDLE

    def dispose(self) -> None:
        self._disposed = True
