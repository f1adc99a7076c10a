"""Curation event processing - inbound entry points of the ledger.

One call processes one event to completion:

    event -> position ledger -> progress counters -> threshold awards
                 \\-> stats counters on every first creation

Progress wiring:
- a position going from zero shares to nonzero counts one more subgraph
  signalled; it also counts as "house odds" when the curator owns the
  subgraph, or as an "ape" signal when it lands within the configured
  number of blocks after publication
- deposited tokens add to the owner's attracted signal, tokens received
  on withdrawal subtract from it
"""

import logging
from typing import Optional

from ..config.schema import Config
from ..store.backend import EntityStore, load_or_create
from .badges import BadgeAwardEngine, BadgeAwardEventData, BadgeAwardEventMetadata, Provenance
from .beneficiary import BeneficiaryResolver
from .errors import InconsistentStateError, MissingEntityError
from .models import NameSignal, Publisher, Subgraph
from .numeric import Number, make_id
from .positions import PositionLedger, check_amounts
from .progress import ProgressAccumulator
from .stats import StatsAccumulator
from .thresholds import ThresholdAwarder

logger = logging.getLogger(__name__)

# Progress metrics
METRIC_CURATOR_SUBGRAPHS_SIGNALLED = "curator_subgraphs_signalled"
METRIC_CURATOR_APE = "curator_ape"
METRIC_CURATOR_HOUSE_ODDS = "curator_house_odds"
METRIC_PUBLISHER_SIGNAL_ATTRACTED = "publisher_signal_attracted"

# Award metadata names
METADATA_TOKENS = "tokens"
METADATA_CURATOR = "curator"
METADATA_SUBGRAPH = "subgraph"


class CurationProcessor:
    """Wires the ledger components together behind the inbound event API."""

    def __init__(self, config: Config, store: EntityStore, resolver: Optional[BeneficiaryResolver] = None):
        """
        Initialize the processor and materialize configured badge definitions.

        Args:
            config: Ledger configuration
            store: Entity store shared by every component
            resolver: Beneficiary resolver (defaults to lock-wallet lookup in ``store``)
        """
        self.config = config
        self.store = store
        self.stats = StatsAccumulator(store)
        self.positions = PositionLedger(store, self.stats, precision=config.ledger.precision)
        self.badges = BadgeAwardEngine(store, self.stats)
        self.progress = ProgressAccumulator(store)
        self.progress.add_listener(ThresholdAwarder(config, self.badges))
        self.resolver = resolver or BeneficiaryResolver(store)

        self.stats.get_or_init()
        self.badges.register_definitions(config)

    # =========================================================================
    # ANCHORS
    # =========================================================================

    def on_lock_wallet_created(self, wallet_id: str, beneficiary_id: str) -> None:
        self.resolver.register_lock_wallet(wallet_id, beneficiary_id)

    def on_subgraph_published(self, owner_raw_id: str, subgraph_number: str, provenance: Provenance) -> Subgraph:
        """Create the subgraph anchor and its publisher; redelivery is a no-op."""
        owner_id = self.resolver.resolve(owner_raw_id)
        subgraph_id = make_id(owner_id, subgraph_number)

        subgraph = self.store.load(Subgraph, subgraph_id)
        if subgraph is not None:
            return subgraph

        publisher, created = load_or_create(
            self.store, Publisher, owner_id, lambda i: Publisher(id=i, account=i)
        )
        if created:
            self.stats.bump_publisher_count()
            logger.info(f"New publisher {owner_id}")

        subgraph = Subgraph(
            id=subgraph_id,
            owner=owner_id,
            subgraph_number=str(subgraph_number),
            block_published=provenance.block_number,
        )
        self.store.save(subgraph)

        publisher.subgraph_count += 1
        self.store.save(publisher)
        return subgraph

    def _load_subgraph(self, subgraph_id: str) -> Subgraph:
        subgraph = self.store.load(Subgraph, subgraph_id)
        if subgraph is None:
            logger.error(f"Signal event references unknown subgraph '{subgraph_id}'")
            raise MissingEntityError(Subgraph.KIND, subgraph_id)
        return subgraph

    # =========================================================================
    # SIGNAL EVENTS
    # =========================================================================

    def on_deposit(
        self,
        curator_raw_id: str,
        subgraph_id: str,
        name_signal_delta: int,
        signal_delta: Number,
        tokens_deposited: int,
        provenance: Provenance,
    ) -> NameSignal:
        """
        Process a signal mint.

        Raises:
            MissingEntityError: If the subgraph anchor does not exist
            InconsistentStateError: If an amount is negative
        """
        check_amounts(name_signal_delta, signal_delta, tokens_deposited)
        subgraph = self._load_subgraph(subgraph_id)
        curator_id = self.resolver.resolve(curator_raw_id)

        event_data = BadgeAwardEventData.from_provenance(
            provenance,
            [
                BadgeAwardEventMetadata(METADATA_TOKENS, str(tokens_deposited)),
                BadgeAwardEventMetadata(METADATA_CURATOR, curator_id),
                BadgeAwardEventMetadata(METADATA_SUBGRAPH, subgraph_id),
            ],
        )

        position = self.positions.open_or_get(curator_id, subgraph_id)
        becoming_active = self.positions.apply_deposit(
            position, name_signal_delta, signal_delta, tokens_deposited
        )

        if becoming_active:
            self.progress.increment(curator_id, METRIC_CURATOR_SUBGRAPHS_SIGNALLED, event_data)

            curator_is_owner = subgraph.owner == curator_id
            blocks_since_publish = provenance.block_number - subgraph.block_published
            if not curator_is_owner and blocks_since_publish <= self.config.ledger.ape_window_blocks:
                self.progress.increment(curator_id, METRIC_CURATOR_APE, event_data)
            if curator_is_owner:
                self.progress.increment(curator_id, METRIC_CURATOR_HOUSE_ODDS, event_data)

        self.progress.add(subgraph.owner, METRIC_PUBLISHER_SIGNAL_ATTRACTED, tokens_deposited, event_data)
        return position

    def on_withdrawal(
        self,
        curator_raw_id: str,
        subgraph_id: str,
        name_signal_delta: int,
        signal_delta: Number,
        tokens_received: int,
        provenance: Provenance,
    ) -> NameSignal:
        """
        Process a signal burn.

        Raises:
            MissingEntityError: If the subgraph anchor does not exist
            InconsistentStateError: If an amount is negative or more shares
                are burnt than are held
        """
        check_amounts(name_signal_delta, signal_delta, tokens_received)
        subgraph = self._load_subgraph(subgraph_id)
        curator_id = self.resolver.resolve(curator_raw_id)
        event_data = BadgeAwardEventData.from_provenance(provenance)

        if name_signal_delta > 0 and self.store.load(NameSignal, make_id(curator_id, subgraph_id)) is None:
            logger.error(f"Burn of {name_signal_delta} shares by {curator_id} on '{subgraph_id}' without a position")
            raise InconsistentStateError(f"No position for {curator_id} on '{subgraph_id}' to burn from")

        position = self.positions.open_or_get(curator_id, subgraph_id)
        self.positions.apply_withdrawal(position, name_signal_delta, signal_delta, tokens_received)

        self.progress.subtract(subgraph.owner, METRIC_PUBLISHER_SIGNAL_ATTRACTED, tokens_received, event_data)
        return position
