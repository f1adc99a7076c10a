"""Tests for progress counters and threshold awards."""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from emblem.config.loader import config_from_dict
from emblem.engine.badges import BadgeAwardEngine, BadgeAwardEventData
from emblem.engine.models import Account, BadgeAward, MetricProgress
from emblem.engine.progress import ProgressAccumulator
from emblem.engine.stats import StatsAccumulator
from emblem.engine.thresholds import ThresholdAwarder
from emblem.store.backend import MemoryStore

CONFIG = {
    "protocol": {"name": "the-graph"},
    "tracks": [{"name": "curator", "protocol_role": "curator"}],
    "badges": [
        {"name": "one", "track": "curator", "metric": "signals", "threshold": 1},
        {"name": "five", "track": "curator", "metric": "signals", "threshold": 5, "voting_weight": 2},
        {"name": "manual", "track": "curator"},
    ],
}

EVENT = BadgeAwardEventData(block_number=1, transaction_hash="0xtx", timestamp=1)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def progress(store):
    return ProgressAccumulator(store)


@pytest.fixture
def awarded_progress(store):
    """Progress counters wired to threshold awards."""
    config = config_from_dict(CONFIG)
    stats = StatsAccumulator(store)
    stats.get_or_init()
    badges = BadgeAwardEngine(store, stats)
    badges.register_definitions(config)
    accumulator = ProgressAccumulator(store)
    accumulator.add_listener(ThresholdAwarder(config, badges))
    return accumulator


class TestCounters:
    """Counter arithmetic."""

    def test_untouched_counter_is_zero(self, progress):
        """Reading a counter never created returns 0."""
        assert progress.get("0xalice", "signals") == 0

    def test_increment_creates_counter(self, store, progress):
        """First increment creates the record at 1."""
        progress.increment("0xalice", "signals")
        record = store.load(MetricProgress, "0xalice-signals")
        assert record.value == 1
        assert record.winner == "0xalice"
        assert record.metric == "signals"

    def test_add_and_subtract(self, progress):
        """Amounts apply as given, including large token values."""
        big = 10 ** 24
        progress.add("0xowner", "attracted", big)
        progress.subtract("0xowner", "attracted", 3)
        assert progress.get("0xowner", "attracted") == big - 3

    def test_decrement_can_go_negative(self, progress):
        """Counters do not clamp at zero."""
        progress.decrement("0xalice", "signals")
        assert progress.get("0xalice", "signals") == -1

    def test_counters_are_per_account_and_metric(self, progress):
        """Each (account, metric) pair has its own counter."""
        progress.increment("0xalice", "signals")
        progress.increment("0xalice", "ape")
        progress.increment("0xbob", "signals")
        progress.increment("0xbob", "signals")
        assert progress.get("0xalice", "signals") == 1
        assert progress.get("0xbob", "signals") == 2
        assert progress.get("0xalice", "ape") == 1

    def test_listener_sees_previous_value(self, progress):
        """Listeners get the saved record and the value before the change."""
        seen = []
        progress.add_listener(lambda record, previous, data: seen.append((previous, record.value, data)))

        progress.add("0xalice", "signals", 3, EVENT)
        progress.decrement("0xalice", "signals")

        assert seen == [(0, 3, EVENT), (3, 2, None)]


class TestThresholdAwarder:
    """Threshold crossings issue badges."""

    def test_crossing_awards_badge(self, store, awarded_progress):
        """Reaching a threshold awards the badge once."""
        awarded_progress.increment("0xalice", "signals", EVENT)
        assert store.load(BadgeAward, "one-0xalice") is not None
        assert store.load(BadgeAward, "five-0xalice") is None

    def test_jump_over_several_thresholds(self, store, awarded_progress):
        """One large step crosses every threshold in between."""
        awarded_progress.add("0xalice", "signals", 7, EVENT)
        assert store.load(BadgeAward, "one-0xalice").global_award_number == 1
        assert store.load(BadgeAward, "five-0xalice").global_award_number == 2

    def test_staying_above_threshold_awards_nothing_new(self, store, awarded_progress):
        """Moves that stay above a threshold do not cross it."""
        awarded_progress.increment("0xalice", "signals", EVENT)
        awarded_progress.increment("0xalice", "signals", EVENT)
        assert store.count(BadgeAward) == 1

    def test_falling_back_does_not_revoke(self, store, awarded_progress):
        """Dropping below a threshold keeps the award; re-crossing adds no record."""
        awarded_progress.increment("0xalice", "signals", EVENT)
        awarded_progress.decrement("0xalice", "signals")
        awarded_progress.increment("0xalice", "signals", EVENT)

        assert store.count(BadgeAward) == 1
        assert store.load(BadgeAward, "one-0xalice") is not None

    def test_recrossing_does_not_credit_account_again(self, store, awarded_progress):
        """The account is credited once per badge however often a threshold is re-crossed."""
        for _ in range(3):
            awarded_progress.add("0xalice", "signals", 5, EVENT)
            awarded_progress.subtract("0xalice", "signals", 5)

        account = store.load(Account, "0xalice")
        assert account.winner.award_count == 2
        assert account.winner.voting_power == 2

    def test_badge_without_metric_is_never_automatic(self, store, awarded_progress):
        """Badges with no metric are only issued explicitly."""
        awarded_progress.add("0xalice", "signals", 100, EVENT)
        assert store.load(BadgeAward, "manual-0xalice") is None

    def test_crossing_without_event_data_raises(self, awarded_progress):
        """An award cannot be recorded without provenance."""
        with pytest.raises(ValueError):
            awarded_progress.increment("0xalice", "signals")
