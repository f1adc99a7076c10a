"""Position ledger - signal balances with average-cost-basis accounting.

Each (curator, subgraph) pair has a ``NameSignal`` record with two tracks:

- name signal: integer shares minted/burned by the curator
- signal: the decimal value balance those shares represent

Both tracks carry a running cost basis and a per-unit cost basis.

Deposit:
    cost_basis += tokens_deposited
    per_unit    = cost_basis / balance         (skipped when balance == 0)

Withdrawal:
    cost_basis  = balance * per_unit            (re-derived from what is left)
    per_unit    = 0                             (when cost_basis == 0)

Every quotient and product is truncated to the configured number of
fractional digits (18 by default).
"""

import logging
from decimal import Decimal

from ..store.backend import EntityStore, load_or_create
from .errors import InconsistentStateError
from .models import Curator, NameSignal
from .numeric import DEFAULT_PRECISION, ZERO, Number, add, divide, make_id, multiply, subtract, to_decimal
from .stats import StatsAccumulator

logger = logging.getLogger(__name__)


def check_amounts(name_signal_delta: int, signal_delta: Number, tokens: int) -> None:
    """
    Reject negative event amounts.

    Deltas and token amounts are magnitudes; the direction comes from the
    event kind. A negative amount would shrink a cumulative token total.

    Raises:
        InconsistentStateError: If any amount is negative
    """
    amounts = {
        "name_signal_delta": name_signal_delta,
        "signal_delta": to_decimal(signal_delta),
        "tokens": tokens,
    }
    negative = {name: value for name, value in amounts.items() if value < 0}
    if negative:
        logger.error(f"Rejected negative event amounts: {negative}")
        raise InconsistentStateError(f"Event amounts must not be negative: {negative}")


class PositionLedger:
    """Applies deposits and withdrawals to ``NameSignal`` records."""

    def __init__(self, store: EntityStore, stats: StatsAccumulator, precision: int = DEFAULT_PRECISION):
        """
        Initialize position ledger.

        Args:
            store: Entity store
            stats: Global counter service
            precision: Fractional digits kept after each division/product
        """
        self.store = store
        self.stats = stats
        self.precision = precision

    def _create_or_load_curator(self, curator_id: str) -> Curator:
        curator, created = load_or_create(
            self.store, Curator, curator_id, lambda i: Curator(id=i, account=i)
        )
        if created:
            self.stats.bump_curator_count()
            logger.info(f"New curator {curator_id}")
        return curator

    def open_or_get(self, curator_id: str, subgraph_id: str) -> NameSignal:
        """
        Load the position for (curator, subgraph), creating it on first use.

        Creation also creates the curator when needed and counts the new
        position in the curator's ``unique_signal_count``.
        """
        position_id = make_id(curator_id, subgraph_id)
        position = self.store.load(NameSignal, position_id)
        if position is not None:
            return position

        curator = self._create_or_load_curator(curator_id)
        position = NameSignal(id=position_id, curator=curator_id, subgraph_id=subgraph_id)
        self.store.save(position)

        curator.unique_signal_count += 1
        self.store.save(curator)
        return position

    def apply_deposit(
        self,
        position: NameSignal,
        name_signal_delta: int,
        signal_delta: Number,
        tokens_deposited: int,
    ) -> bool:
        """
        Apply a signal deposit and save the position.

        Args:
            position: Position to update (mutated in place)
            name_signal_delta: Shares minted
            signal_delta: Value balance created
            tokens_deposited: Tokens paid in

        Returns:
            True when the position goes from a zero share balance to a
            nonzero one with this deposit

        Raises:
            InconsistentStateError: If any amount is negative
        """
        check_amounts(name_signal_delta, signal_delta, tokens_deposited)
        signal_delta = to_decimal(signal_delta)
        becoming_active = position.name_signal == 0 and name_signal_delta != 0
        tokens = Decimal(tokens_deposited)

        position.name_signal += name_signal_delta
        position.signal = add(position.signal, signal_delta)
        position.signalled_tokens += tokens_deposited

        # name signal track
        position.name_signal_cost_basis = add(position.name_signal_cost_basis, tokens)
        if position.name_signal != 0:
            position.name_signal_cost_basis_per_unit = divide(
                position.name_signal_cost_basis, Decimal(position.name_signal), self.precision
            )

        # signal track
        position.signal_cost_basis = add(position.signal_cost_basis, tokens)
        if position.signal != ZERO:
            position.signal_cost_basis_per_unit = divide(
                position.signal_cost_basis, position.signal, self.precision
            )

        self.store.save(position)
        logger.debug(
            f"Deposit on {position.id}: +{name_signal_delta} shares, +{tokens_deposited} tokens, "
            f"balance={position.name_signal}"
        )
        return becoming_active

    def apply_withdrawal(
        self,
        position: NameSignal,
        name_signal_delta: int,
        signal_delta: Number,
        tokens_received: int,
    ) -> None:
        """
        Apply a signal burn and save the position.

        The cost basis of each track is re-derived from the surviving balance
        at the current per-unit cost; a full exit resets both fields to zero.

        Raises:
            InconsistentStateError: If an amount is negative or the burn
                exceeds the share balance
        """
        check_amounts(name_signal_delta, signal_delta, tokens_received)
        signal_delta = to_decimal(signal_delta)
        remaining = position.name_signal - name_signal_delta
        if remaining < 0:
            logger.error(f"Burn of {name_signal_delta} shares on {position.id} exceeds balance {position.name_signal}")
            raise InconsistentStateError(
                f"NameSignal '{position.id}' would go negative: "
                f"balance={position.name_signal}, burnt={name_signal_delta}"
            )

        position.name_signal = remaining
        position.signal = subtract(position.signal, signal_delta)
        position.unsignalled_tokens += tokens_received

        position.name_signal_cost_basis = multiply(
            Decimal(position.name_signal), position.name_signal_cost_basis_per_unit, self.precision
        )
        if position.name_signal_cost_basis == ZERO:
            position.name_signal_cost_basis_per_unit = ZERO

        position.signal_cost_basis = multiply(
            position.signal, position.signal_cost_basis_per_unit, self.precision
        )
        if position.signal_cost_basis == ZERO:
            position.signal_cost_basis_per_unit = ZERO

        self.store.save(position)
        logger.debug(
            f"Withdrawal on {position.id}: -{name_signal_delta} shares, {tokens_received} tokens out, "
            f"balance={position.name_signal}"
        )
