# teamup/history.py
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class History(Generic[T]):
    """
    Snapshot-based undo/redo over any value type.

    - past: oldest -> newest
    - future: nearest -> farthest
    - optional max_past: when set, the oldest snapshots are dropped first
      (FIFO) once the cap is exceeded; undo can then not reach them anymore.

    Not thread-safe: meant for a single actor dispatching edits in order.
    """

    def __init__(self, initial: T, max_past: Optional[int] = None):
        if max_past is not None and max_past <= 0:
            raise ValueError("max_past must be a positive integer or None")
        self.max_past = max_past
        self.past: list[T] = []
        self.present: T = initial
        self.future: list[T] = []

    @property
    def can_undo(self) -> bool:
        return len(self.past) > 0

    @property
    def can_redo(self) -> bool:
        return len(self.future) > 0

    def set(self, value: T) -> None:
        if value is self.present:
            return
        self.past.append(self.present)
        self._prune_past()
        self.present = value
        # a new edit after undo discards the redo branch
        self.future = []

    def undo(self) -> Optional[T]:
        if not self.past:
            return None
        previous = self.past.pop()
        self.future.insert(0, self.present)
        self.present = previous
        return previous

    def redo(self) -> Optional[T]:
        if not self.future:
            return None
        upcoming = self.future.pop(0)
        self.past.append(self.present)
        self._prune_past()
        self.present = upcoming
        return upcoming

    def reset(self, value: T) -> None:
        self.past = []
        self.future = []
        self.present = value

    def rewrite(self, fn: Callable[[T], T]) -> None:
        """Apply `fn` to every recorded snapshot without adding an undo step."""
        self.past = [fn(v) for v in self.past]
        self.present = fn(self.present)
        self.future = [fn(v) for v in self.future]

    def _prune_past(self) -> None:
        if self.max_past is None:
            return
        overflow = len(self.past) - self.max_past
        if overflow > 0:
            # drop from front until under cap
            del self.past[:overflow]
