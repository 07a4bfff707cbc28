from typing import Generic, Sequence, TypeVar

T = TypeVar("T")


class RotationCursor(Generic[T]):
    """
    Display cursor over a list that is replaced wholesale from time to time.

    `advance()` is driven by its own timer; `replace()` is called by whoever
    rebuilds the list and clamps the cursor into the new bounds.
    """

    def __init__(self, items: Sequence[T] = ()) -> None:
        self._items: list[T] = list(items)
        self.current_index = 0

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> list[T]:
        return list(self._items)

    @property
    def current(self) -> T | None:
        if not self._items:
            return None
        return self._items[self.current_index]

    def advance(self) -> T | None:
        if self._items:
            self.current_index = (self.current_index + 1) % len(self._items)
        return self.current

    def replace(self, items: Sequence[T]) -> None:
        self._items = list(items)
        if not self._items:
            self.current_index = 0
        else:
            self.current_index = min(self.current_index, len(self._items) - 1)
