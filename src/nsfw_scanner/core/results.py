"""
results.py: Confidence-sorted result collection shared by scan workers and callers.

Classification completions arrive in whatever order the backend finishes them.
ResultAggregator keeps the collection sorted by descending confidence after
every single insert, so a caller reading a snapshot mid-scan always sees a
fully ordered list.
"""

import threading
from dataclasses import dataclass
from typing import Callable, Iterator, List

from ..utils.log_utils import get_logger

logger = get_logger(__name__)

SnapshotListener = Callable[[List["ClassificationResult"]], None]


@dataclass(frozen=True)
class ClassificationResult:
    """Confidence that one file belongs to the flagged category."""
    filename: str
    confidence: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence out of range for {self.filename}: {self.confidence}")


class ResultAggregator:
    """
    Thread-safe, descending-confidence collection of ClassificationResult.

    insert() and remove() are the only mutation paths and are serialized by a
    single re-entrant lock. Listeners registered with subscribe() receive a
    copy of the collection after each mutation, in mutation order.
    """

    def __init__(self) -> None:
        self._items: List[ClassificationResult] = []
        self._lock = threading.RLock()
        self._listeners: List[SnapshotListener] = []

    def insert(self, result: ClassificationResult) -> int:
        """Insert before the first entry with a strictly lower confidence.

        Equal confidences keep arrival order. Returns the insert position.
        """
        with self._lock:
            index = next(
                (i for i, item in enumerate(self._items) if item.confidence < result.confidence),
                len(self._items),
            )
            self._items.insert(index, result)
            logger.debug("Inserted %s (%.3f) at %d", result.filename, result.confidence, index)
            self._notify()
        return index

    def remove(self, filename: str) -> bool:
        """Remove the first entry for `filename`. Returns False if there was none."""
        with self._lock:
            for i, item in enumerate(self._items):
                if item.filename == filename:
                    del self._items[i]
                    break
            else:
                return False
            logger.debug("Removed %s", filename)
            self._notify()
        return True

    def snapshot(self) -> List[ClassificationResult]:
        """Return a copy of the collection in its current order."""
        with self._lock:
            return list(self._items)

    def get(self, filename: str):
        """Return the entry for `filename`, or None."""
        with self._lock:
            return next((item for item in self._items if item.filename == filename), None)

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener for post-mutation snapshots. Returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        # called with the lock held
        snapshot = list(self._items)
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Result listener %r failed", listener)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[ClassificationResult]:
        return iter(self.snapshot())

    def __contains__(self, filename: object) -> bool:
        return self.get(filename) is not None
