"""Badge award engine - once-only award records with cascading counters.

Award identity is ``<definition>-<winner>``. The first issuance creates the
award (numbered from the global and per-definition counters) and its
metadata. Every issuance, first or repeated, then updates the winner's
account projections.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..config.schema import Config
from ..store.backend import EntityStore, load_or_create
from .errors import MissingEntityError
from .models import (
    Account,
    BadgeAward,
    BadgeAwardMetadata,
    BadgeDefinition,
    BadgeTrack,
    Protocol,
)
from .numeric import make_id
from .stats import StatsAccumulator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Provenance:
    """Where an inbound event came from."""
    block_number: int
    transaction_hash: str
    timestamp: int


@dataclass(frozen=True)
class BadgeAwardEventMetadata:
    """Name/value pair recorded with an award."""
    name: str
    value: str


@dataclass(frozen=True)
class BadgeAwardEventData:
    """Provenance plus the metadata to attach if the event produces an award."""
    block_number: int
    transaction_hash: str
    timestamp: int
    metadata: List[BadgeAwardEventMetadata] = field(default_factory=list)

    @classmethod
    def from_provenance(
        cls,
        provenance: Provenance,
        metadata: Optional[Sequence[BadgeAwardEventMetadata]] = None,
    ) -> "BadgeAwardEventData":
        return cls(
            block_number=provenance.block_number,
            transaction_hash=provenance.transaction_hash,
            timestamp=provenance.timestamp,
            metadata=list(metadata or []),
        )


class BadgeAwardEngine:
    """Issues badge awards and keeps award counters and voting power current."""

    def __init__(self, store: EntityStore, stats: StatsAccumulator):
        self.store = store
        self.stats = stats

    # =========================================================================
    # DEFINITIONS
    # =========================================================================

    def create_or_load_protocol(self, name: str) -> Protocol:
        protocol, _ = load_or_create(self.store, Protocol, name, lambda i: Protocol(id=i))
        return protocol

    def create_or_load_track(self, name: str, protocol_role: str, protocol: str) -> BadgeTrack:
        track = self.store.load(BadgeTrack, name)
        if track is None:
            self.create_or_load_protocol(protocol)
            track = BadgeTrack(id=name, protocol_role=protocol_role, protocol=protocol)
            self.store.save(track)
        return track

    def create_or_load_definition(
        self,
        name: str,
        description: str,
        badge_track: str,
        voting_weight: int,
        image: str,
    ) -> BadgeDefinition:
        """Materialize a definition; an existing one is returned untouched."""
        definition, created = load_or_create(
            self.store,
            BadgeDefinition,
            name,
            lambda i: BadgeDefinition(
                id=i,
                description=description,
                badge_track=badge_track,
                voting_weight=voting_weight,
                image=image,
            ),
        )
        if created:
            logger.info(f"Registered badge definition '{name}' (voting weight {voting_weight})")
        return definition

    def register_definitions(self, config: Config) -> List[BadgeDefinition]:
        """Materialize the protocol, tracks and definitions from configuration."""
        for track in config.tracks:
            self.create_or_load_track(track.name, track.protocol_role, config.protocol.name)
        return [
            self.create_or_load_definition(
                badge.name, badge.description, badge.track, badge.voting_weight, badge.image
            )
            for badge in config.badges
        ]

    # =========================================================================
    # ISSUANCE
    # =========================================================================

    def issue_by_name(self, definition_name: str, winner_id: str, event_data: BadgeAwardEventData) -> None:
        """
        Issue a badge identified by definition name.

        Raises:
            MissingEntityError: If the definition was never registered
        """
        definition = self.store.load(BadgeDefinition, definition_name)
        if definition is None:
            logger.error(f"Cannot award unknown badge definition '{definition_name}'")
            raise MissingEntityError(BadgeDefinition.KIND, definition_name)
        self.issue(definition, winner_id, event_data)

    def issue(self, definition: BadgeDefinition, winner_id: str, event_data: BadgeAwardEventData) -> None:
        """
        Award ``definition`` to ``winner_id``.

        The award record and its metadata are created only once per
        (definition, winner). The account update runs on every call.

        Args:
            definition: Badge definition (its award_count is incremented on first award)
            winner_id: Canonical account id
            event_data: Provenance and metadata of the triggering event
        """
        award_id = make_id(definition.id, winner_id)
        award = self.store.load(BadgeAward, award_id)

        if award is None:
            global_number = self.stats.bump_award_count()

            definition.award_count += 1
            self.store.save(definition)

            award = BadgeAward(
                id=award_id,
                winner=winner_id,
                definition=definition.id,
                block_awarded=event_data.block_number,
                transaction_hash=event_data.transaction_hash,
                timestamp_awarded=event_data.timestamp,
                global_award_number=global_number,
                award_number=definition.award_count,
            )
            self.store.save(award)
            logger.info(
                f"Awarded '{definition.id}' to {winner_id} "
                f"(#{definition.award_count} of definition, #{global_number} overall)"
            )

            for metadata in event_data.metadata:
                self._create_or_load_metadata(award_id, metadata.name, metadata.value)

        self._update_account(definition, winner_id)

    def _create_or_load_metadata(self, award_id: str, name: str, value: str) -> BadgeAwardMetadata:
        metadata, _ = load_or_create(
            self.store,
            BadgeAwardMetadata,
            make_id(award_id, name),
            lambda i: BadgeAwardMetadata(id=i, badge_award=award_id, name=name, value=value),
        )
        return metadata

    def create_or_load_account(self, account_id: str) -> Account:
        account, _ = load_or_create(self.store, Account, account_id, lambda i: Account(id=i))
        return account

    def _update_account(self, definition: BadgeDefinition, winner_id: str) -> None:
        account = self.create_or_load_account(winner_id)
        account.winner.award_count += 1
        account.graph_account.award_count += 1

        weight = definition.voting_weight
        if weight > 0:
            if account.winner.voting_power == 0:
                self.stats.bump_voter_count()
                logger.info(f"{winner_id} earned voting power for the first time")
            account.winner.voting_power += weight
            account.graph_account.voting_power += weight

        self.store.save(account)
