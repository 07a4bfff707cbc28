"""
Recent engine events (tick summaries, per-source fetch failures, lifecycle)
kept in memory for GET /ops/log. Newest first; the oldest entries fall off
once OPS_LOG_CAPACITY is reached.
"""
from collections import deque
from datetime import datetime, timezone
from typing import Optional

from livefeed.config import settings
from livefeed.schemas import OpsLogEntrySchema


class OpsLog:
    def __init__(self, capacity: int = 200) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._entries: deque[OpsLogEntrySchema] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._entries)

    def record(
        self,
        level: str,
        category: str,
        message: str,
        *,
        source_id: Optional[str] = None,
        count: Optional[int] = None,
    ) -> OpsLogEntrySchema:
        entry = OpsLogEntrySchema(
            time=datetime.now(timezone.utc),
            level=level,
            category=category,
            message=message,
            source_id=source_id,
            count=count,
        )
        self._entries.appendleft(entry)
        return entry

    def entries(
        self,
        category: Optional[str] = None,
        source_id: Optional[str] = None,
        level: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[OpsLogEntrySchema]:
        """Newest-first entries matching every filter given."""
        matched = [
            entry
            for entry in self._entries
            if (category is None or entry.category == category)
            and (source_id is None or entry.source_id == source_id)
            and (level is None or entry.level == level)
        ]
        return matched if limit is None else matched[:limit]

    def clear(self) -> None:
        self._entries.clear()


OPS_LOG = OpsLog(settings.OPS_LOG_CAPACITY)


def log_event(
    level: str,
    category: str,
    message: str,
    *,
    source_id: Optional[str] = None,
    count: Optional[int] = None,
) -> OpsLogEntrySchema:
    return OPS_LOG.record(level, category, message, source_id=source_id, count=count)
