"""Configured threshold policy mapping metric crossings to badge awards."""

import logging
from typing import Optional

from ..config.schema import Config
from .badges import BadgeAwardEngine, BadgeAwardEventData
from .models import BadgeAward, MetricProgress
from .numeric import make_id

logger = logging.getLogger(__name__)


class ThresholdAwarder:
    """Progress listener that issues a badge the first time its threshold is crossed.

    A crossing is ``previous < threshold <= value``. Going back below a
    threshold never revokes an award, and crossing it again once the award
    exists issues nothing, so the winner's account is credited once per badge.
    """

    def __init__(self, config: Config, badges: BadgeAwardEngine):
        self.config = config
        self.badges = badges

    def __call__(
        self,
        progress: MetricProgress,
        previous: int,
        event_data: Optional[BadgeAwardEventData],
    ) -> None:
        if progress.value <= previous:
            return
        for badge in self.config.badges_for_metric(progress.metric):
            if not previous < badge.threshold <= progress.value:
                continue
            if self.badges.store.load(BadgeAward, make_id(badge.name, progress.winner)) is not None:
                logger.debug(f"{progress.winner} re-crossed {badge.threshold} on {progress.metric}, already holds '{badge.name}'")
                continue
            if event_data is None:
                raise ValueError(
                    f"Crossing of '{progress.metric}' for {progress.winner} has no event data to award '{badge.name}'"
                )
            logger.debug(f"{progress.winner} crossed {badge.threshold} on {progress.metric}")
            self.badges.issue_by_name(badge.name, progress.winner, event_data)
