"""Sanity checks on stored ledger state."""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..engine.models import (
    STATS_ID,
    Account,
    BadgeAward,
    BadgeDefinition,
    Curator,
    EntityStats,
    NameSignal,
    Publisher,
)
from ..engine.numeric import ZERO
from ..store.backend import EntityStore

logger = logging.getLogger(__name__)


@dataclass
class ValidationWarning:
    """A validation warning with severity and message."""
    severity: str  # "warning" or "error"
    category: str  # e.g., "balance", "cost_basis", "counters"
    message: str
    details: Optional[str] = None


class LedgerChecker:
    """Run consistency checks over everything in an entity store."""

    def __init__(self, store: EntityStore):
        """Initialize with the store to inspect."""
        self.store = store

    def check_positions(self) -> List[ValidationWarning]:
        """
        Check every position's balances and cost basis fields.

        A nonzero per-unit cost on a zero name-signal balance is an error. On
        the signal track it is only a warning: deposits that leave the signal
        balance at zero keep the previous per-unit value.

        Returns:
            List of validation warnings
        """
        warnings = []

        for position in self.store.all(NameSignal):
            if position.name_signal < 0:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="balance",
                    message=f"Negative name signal on {position.id}",
                    details=f"name_signal={position.name_signal}"
                ))
            if position.signal < ZERO:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="balance",
                    message=f"Negative signal on {position.id}",
                    details=f"signal={position.signal}"
                ))

            if position.name_signal == 0 and position.name_signal_cost_basis_per_unit != ZERO:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="cost_basis",
                    message=f"Stale per-unit cost basis on empty position {position.id}",
                    details=f"name_signal_cost_basis_per_unit={position.name_signal_cost_basis_per_unit}"
                ))
            if position.signal == ZERO and position.signal_cost_basis_per_unit != ZERO:
                warnings.append(ValidationWarning(
                    severity="warning",
                    category="cost_basis",
                    message=f"Per-unit signal cost basis kept on zero signal balance for {position.id}",
                    details=f"signal_cost_basis_per_unit={position.signal_cost_basis_per_unit}"
                ))

        return warnings

    def check_counters(self) -> List[ValidationWarning]:
        """
        Compare global counters with the stored population.

        Returns:
            List of validation warnings
        """
        warnings = []
        stats = self.store.load(EntityStats, STATS_ID) or EntityStats(id=STATS_ID)
        voters = sum(1 for account in self.store.all(Account) if account.winner.voting_power > 0)

        expected = [
            ("curator_count", stats.curator_count, self.store.count(Curator)),
            ("publisher_count", stats.publisher_count, self.store.count(Publisher)),
            ("award_count", stats.award_count, self.store.count(BadgeAward)),
            ("voter_count", stats.voter_count, voters),
        ]
        for name, counted, stored in expected:
            if counted != stored:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="counters",
                    message=f"EntityStats.{name} is {counted} but {stored} records exist",
                    details=f"Difference: {counted - stored:+d}"
                ))

        for account in self.store.all(Account):
            if account.winner != account.graph_account:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="counters",
                    message=f"Account projections diverged for {account.id}",
                    details=f"winner={account.winner.model_dump()}, graph_account={account.graph_account.model_dump()}"
                ))

        return warnings

    def check_voting_power(self) -> List[ValidationWarning]:
        """
        Check each account's voting power against the badges it holds.

        Voting power must equal the summed voting weight of the account's
        awards; anything above that means an award was credited twice.

        Returns:
            List of validation warnings
        """
        warnings = []
        weights = {definition.id: definition.voting_weight for definition in self.store.all(BadgeDefinition)}
        earned: Dict[str, int] = {}
        for award in self.store.all(BadgeAward):
            earned[award.winner] = earned.get(award.winner, 0) + weights.get(award.definition, 0)

        for account in self.store.all(Account):
            expected = earned.get(account.id, 0)
            if account.winner.voting_power != expected:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="voting_power",
                    message=f"Voting power of {account.id} does not match its awards",
                    details=f"voting_power={account.winner.voting_power}, awarded weight={expected}"
                ))

        return warnings

    def run_all(self) -> List[ValidationWarning]:
        """Run every check and log what was found."""
        warnings = self.check_positions() + self.check_counters() + self.check_voting_power()
        for warning in warnings:
            logger.warning(f"[{warning.severity}] {warning.category}: {warning.message}")
        return warnings
