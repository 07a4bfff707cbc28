import asyncio
import logging
import random
from datetime import datetime
from typing import Callable, Sequence

from livefeed.config import settings
from livefeed.schemas import ActivityItem
from livefeed.services.catalog import SNAPSHOT_SOURCES, SourceDescriptor
from livefeed.services.event_store import EventStore
from livefeed.services.normalizer import normalize_rows
from livefeed.services.ops_log import log_event
from livefeed.services.poller import utcnow
from livefeed.services.shuffle import fairness_shuffle

logger = logging.getLogger(__name__)

Shuffler = Callable[[Sequence[ActivityItem], random.Random], list[ActivityItem]]


def _row_key(row_id: str) -> tuple[int, int | str]:
    return (0, int(row_id)) if row_id.isdecimal() else (1, row_id)


def rank(
    items: Sequence[ActivityItem],
    priority: dict[str, int],
    top_k: int,
) -> list[ActivityItem]:
    """
    Newest first, truncated to `top_k`. Equal timestamps fall back to catalog
    order of the source, then row id.
    """
    last = len(priority)
    ordered = sorted(items, key=lambda i: (priority.get(i.source_id, last), _row_key(i.row_id)))
    ordered.sort(key=lambda i: i.timestamp, reverse=True)
    return ordered[:top_k]


class SnapshotAggregator:
    """Rebuilds the top-K activity snapshot from every snapshot source each refresh."""

    def __init__(
        self,
        store: EventStore,
        sources: Sequence[SourceDescriptor] = SNAPSHOT_SOURCES,
        *,
        top_k: int | None = None,
        enabled: bool = True,
        rng: random.Random | None = None,
        shuffler: Shuffler = fairness_shuffle,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.sources = tuple(sources)
        self.top_k = top_k if top_k is not None else settings.TOP_K
        self.enabled = enabled
        self._rng = rng or random.Random()
        self._shuffler = shuffler
        self._clock = clock
        self._priority = {source.source_id: i for i, source in enumerate(self.sources)}
        self._disposed = False

        self.ranked: list[ActivityItem] = []
        self.snapshot: list[ActivityItem] = []
        self.last_refresh_at: datetime | None = None

    @property
    def disposed(self) -> bool:
        return self._disposed

    async def refresh(self) -> list[ActivityItem]:
        """Rebuild the snapshot; on failure the previous snapshot is kept."""
        if not self.enabled or self._disposed:
            return list(self.snapshot)

        started = self._clock()
        try:
            batches = await asyncio.gather(*(self._fetch(source) for source in self.sources))
            if self._disposed:
                logger.debug("Aggregator disposed mid-refresh, discarding results")
                return list(self.snapshot)
            ranked = rank([item for batch in batches for item in batch], self._priority, self.top_k)
            shuffled = self._shuffler(ranked, self._rng)
        except Exception as exc:
            logger.error("Snapshot refresh failed: %s", exc, exc_info=True)
            log_event("error", "refresh", f"Snapshot refresh failed — {exc}")
            return list(self.snapshot)

        self.ranked = ranked
        self.snapshot = shuffled
        self.last_refresh_at = started
        logger.debug("Snapshot refreshed: %d items", len(shuffled))
        log_event("success", "refresh", f"Snapshot refreshed — {len(shuffled)} items", count=len(shuffled))
        return list(shuffled)

    async def _fetch(self, source: SourceDescriptor) -> list[ActivityItem]:
        try:
            rows = await self.store.fetch(source, limit=source.limit)
        except Exception as exc:
            logger.warning("Source %s fetch failed: %s", source.source_id, exc)
            log_event(
                "warn", "source", f"{source.source_id}: fetch failed — {exc}",
                source_id=source.source_id,
            )
            return []
        return normalize_rows(source, rows, self._rng)

    def dispose(self) -> None:
        self._disposed = True
