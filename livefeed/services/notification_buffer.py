"""
Bounded, append-only log of admitted activity items.

One log, two read adapters: `snapshot()` for pull consumers and
`subscribe()` / listeners for push consumers. Oldest entries are dropped once
`capacity` is exceeded.
"""
import asyncio
import logging
from collections import deque
from typing import Callable

from livefeed.schemas import ActivityItem

logger = logging.getLogger(__name__)

Listener = Callable[[ActivityItem], None]


class Subscription:
    """Async iterator over items appended after it was opened."""

    def __init__(self, buffer: "NotificationBuffer", maxsize: int) -> None:
        self._buffer = buffer
        self._queue: asyncio.Queue[ActivityItem] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def _offer(self, item: ActivityItem) -> None:
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull:
            # Slow consumer: drop the oldest pending item, keep the newest
            self._queue.get_nowait()
            self._queue.put_nowait(item)
            self.dropped += 1

    async def get(self) -> ActivityItem:
        return await self._queue.get()

    def close(self) -> None:
        self._buffer._subscriptions.discard(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> ActivityItem:
        return await self.get()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc) -> None:
        self.close()


class NotificationBuffer:
    def __init__(self, capacity: int = 10) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._items: deque[ActivityItem] = deque(maxlen=capacity)
        self._listeners: list[Listener] = []
        self._subscriptions: set[Subscription] = set()
        self.total_admitted = 0

    def __len__(self) -> int:
        return len(self._items)

    def append(self, item: ActivityItem) -> None:
        self._items.append(item)
        self.total_admitted += 1
        for listener in list(self._listeners):
            try:
                listener(item)
            except Exception:
                logger.exception("Error in activity listener for %s", item.id)
        for subscription in list(self._subscriptions):
            subscription._offer(item)

    def snapshot(self) -> list[ActivityItem]:
        """Current contents, oldest first."""
        return list(self._items)

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        self._listeners = [fn for fn in self._listeners if fn is not listener]

    def subscribe(self, maxsize: int = 100) -> Subscription:
        subscription = Subscription(self, maxsize)
        self._subscriptions.add(subscription)
        return subscription

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)
