"""Per-account metric counters used to detect badge thresholds."""

import logging
from typing import Callable, List, Optional

from ..store.backend import EntityStore, load_or_create
from .badges import BadgeAwardEventData
from .models import MetricProgress
from .numeric import make_id

logger = logging.getLogger(__name__)

# (progress after save, value before the change, event data)
ProgressListener = Callable[[MetricProgress, int, Optional[BadgeAwardEventData]], None]


class ProgressAccumulator:
    """
    Plain counters: load-or-create at zero, apply a delta, save.

    Counters do not deduplicate. Each qualifying event must be turned into
    exactly one call by the caller. Listeners see the value before and after
    every change and decide on their own whether a threshold was crossed.
    """

    def __init__(self, store: EntityStore):
        self.store = store
        self._listeners: List[ProgressListener] = []

    def add_listener(self, listener: ProgressListener) -> None:
        """Register a callback run after each counter change."""
        self._listeners.append(listener)

    def get(self, winner_id: str, metric: str) -> int:
        """Current value of a counter (0 when never touched)."""
        progress = self.store.load(MetricProgress, make_id(winner_id, metric))
        return progress.value if progress is not None else 0

    def _apply(
        self,
        winner_id: str,
        metric: str,
        delta: int,
        event_data: Optional[BadgeAwardEventData],
    ) -> MetricProgress:
        progress, _ = load_or_create(
            self.store,
            MetricProgress,
            make_id(winner_id, metric),
            lambda i: MetricProgress(id=i, winner=winner_id, metric=metric),
        )
        previous = progress.value
        progress.value = previous + delta
        self.store.save(progress)
        logger.debug(f"Progress {progress.id}: {previous} -> {progress.value}")

        for listener in self._listeners:
            listener(progress, previous, event_data)
        return progress

    def increment(self, winner_id: str, metric: str, event_data: Optional[BadgeAwardEventData] = None) -> MetricProgress:
        return self._apply(winner_id, metric, 1, event_data)

    def decrement(self, winner_id: str, metric: str, event_data: Optional[BadgeAwardEventData] = None) -> MetricProgress:
        return self._apply(winner_id, metric, -1, event_data)

    def add(
        self,
        winner_id: str,
        metric: str,
        amount: int,
        event_data: Optional[BadgeAwardEventData] = None,
    ) -> MetricProgress:
        return self._apply(winner_id, metric, amount, event_data)

    def subtract(
        self,
        winner_id: str,
        metric: str,
        amount: int,
        event_data: Optional[BadgeAwardEventData] = None,
    ) -> MetricProgress:
        return self._apply(winner_id, metric, -amount, event_data)
