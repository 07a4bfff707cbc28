import time
from collections import OrderedDict
from typing import Callable


def composite_id(source_id: str, row_id: object) -> str:
    return f"{source_id}:{row_id}"


class SeenIndex:
    """
    Time- and size-bounded index of composite ids already delivered.

    Watermarks already stop a row from being re-fetched after the tick that
    first saw it, so the index only has to cover the overlap window; entries
    expire after `ttl_seconds` and the oldest are evicted past `capacity`.
    Entries stay in first-seen order, so the front is always the oldest.
    """

    def __init__(
        self,
        capacity: int = 1000,
        ttl_seconds: float = 7200,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, float] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        seen_at = self._entries.get(key)
        if seen_at is None:
            return False
        if self._clock() - seen_at > self.ttl_seconds:
            del self._entries[key]
            return False
        return True

    def add(self, key: str) -> None:
        self._entries[key] = self._clock()
        self._entries.move_to_end(key)
        self._expire()
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)

    def _expire(self) -> None:
        cutoff = self._clock() - self.ttl_seconds
        while self._entries:
            key, seen_at = next(iter(self._entries.items()))
            if seen_at >= cutoff:
                break
            del self._entries[key]
