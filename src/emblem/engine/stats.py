"""Global population counters."""

import logging

from ..store.backend import EntityStore, load_or_create
from .models import STATS_ID, EntityStats

logger = logging.getLogger(__name__)


class StatsAccumulator:
    """Single entry point for every mutation of the ``EntityStats`` singleton.

    Each bump reloads the singleton, increments one counter and saves it
    straight away.
    """

    def __init__(self, store: EntityStore):
        self.store = store

    def get_or_init(self) -> EntityStats:
        """Load the singleton, creating it with all counters at zero."""
        stats, _ = load_or_create(self.store, EntityStats, STATS_ID, lambda i: EntityStats(id=i))
        return stats

    def _bump(self, field_name: str) -> int:
        stats = self.get_or_init()
        value = getattr(stats, field_name) + 1
        setattr(stats, field_name, value)
        self.store.save(stats)
        logger.debug(f"EntityStats.{field_name} -> {value}")
        return value

    def bump_curator_count(self) -> int:
        return self._bump("curator_count")

    def bump_publisher_count(self) -> int:
        return self._bump("publisher_count")

    def bump_voter_count(self) -> int:
        return self._bump("voter_count")

    def bump_award_count(self) -> int:
        """Increment the award counter; the new value numbers the award globally."""
        return self._bump("award_count")
