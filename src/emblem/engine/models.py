"""Persisted entity records.

Every record is a flat pydantic model keyed by ``id``. Composite ids are built
with ``numeric.make_id`` so the ``-`` separator stays a stable key format.
Records are serialized with ``model_dump(mode="json")`` (decimals become
strings) and rebuilt with ``model_validate``.
"""

from decimal import Decimal
from typing import Any, ClassVar, Dict

from pydantic import BaseModel, ConfigDict, Field

from .numeric import ZERO

STATS_ID = "1"


class Entity(BaseModel):
    """Base for everything the entity store holds."""
    model_config = ConfigDict(extra="forbid")

    KIND: ClassVar[str] = "Entity"

    id: str = Field(min_length=1)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the record to a JSON-safe dictionary."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Entity":
        """Rebuild a record from its dictionary form."""
        return cls.model_validate(data)


class EntityStats(Entity):
    """Process-wide population counters (singleton, id ``"1"``)."""
    KIND: ClassVar[str] = "EntityStats"

    curator_count: int = Field(default=0, ge=0)
    publisher_count: int = Field(default=0, ge=0)
    voter_count: int = Field(default=0, ge=0)
    award_count: int = Field(default=0, ge=0)


class Curator(Entity):
    """An account holding at least one signal position."""
    KIND: ClassVar[str] = "Curator"

    account: str
    unique_signal_count: int = Field(default=0, ge=0)


class Publisher(Entity):
    """An account that published at least one subgraph."""
    KIND: ClassVar[str] = "Publisher"

    account: str
    subgraph_count: int = Field(default=0, ge=0)


class Subgraph(Entity):
    """Resource anchor that signal positions point at."""
    KIND: ClassVar[str] = "Subgraph"

    owner: str
    subgraph_number: str
    block_published: int = Field(ge=0)


class NameSignal(Entity):
    """Per (curator, subgraph) position with two average-cost-basis tracks.

    ``name_signal`` is the share balance, ``signal`` the derived value
    balance. Each has its own cost basis and per-unit cost basis.
    """
    KIND: ClassVar[str] = "NameSignal"

    curator: str
    subgraph_id: str
    name_signal: int = 0
    signal: Decimal = ZERO
    signalled_tokens: int = Field(default=0, ge=0)
    unsignalled_tokens: int = Field(default=0, ge=0)
    name_signal_cost_basis: Decimal = ZERO
    name_signal_cost_basis_per_unit: Decimal = ZERO
    signal_cost_basis: Decimal = ZERO
    signal_cost_basis_per_unit: Decimal = ZERO


class MetricProgress(Entity):
    """Running per (account, metric) counter."""
    KIND: ClassVar[str] = "MetricProgress"

    winner: str
    metric: str
    value: int = 0


class AccountProjection(BaseModel):
    """One view of an account's award totals."""
    award_count: int = Field(default=0, ge=0)
    voting_power: int = Field(default=0, ge=0)


class Account(Entity):
    """Award aggregate for one account.

    The ``winner`` and ``graph_account`` projections are always written
    together in the same record.
    """
    KIND: ClassVar[str] = "Account"

    winner: AccountProjection = Field(default_factory=AccountProjection)
    graph_account: AccountProjection = Field(default_factory=AccountProjection)


class Protocol(Entity):
    KIND: ClassVar[str] = "Protocol"


class BadgeTrack(Entity):
    KIND: ClassVar[str] = "BadgeTrack"

    protocol_role: str
    protocol: str


class BadgeDefinition(Entity):
    """Static description of an awardable badge; only ``award_count`` changes."""
    KIND: ClassVar[str] = "BadgeDefinition"

    description: str = ""
    badge_track: str
    voting_weight: int = Field(default=0, ge=0)
    image: str = ""
    award_count: int = Field(default=0, ge=0)


class BadgeAward(Entity):
    """Immutable record that ``winner`` earned ``definition``."""
    KIND: ClassVar[str] = "BadgeAward"

    winner: str
    definition: str
    block_awarded: int = Field(ge=0)
    transaction_hash: str
    timestamp_awarded: int = Field(ge=0)
    global_award_number: int = Field(ge=1)
    award_number: int = Field(ge=1)


class BadgeAwardMetadata(Entity):
    """Append-only name/value pair attached to an award."""
    KIND: ClassVar[str] = "BadgeAwardMetadata"

    badge_award: str
    name: str
    value: str


class TokenLockWallet(Entity):
    """Custodial lock wallet and the account it releases tokens to."""
    KIND: ClassVar[str] = "TokenLockWallet"

    beneficiary: str


ENTITY_KINDS = {
    kind.KIND: kind
    for kind in (
        EntityStats,
        Curator,
        Publisher,
        Subgraph,
        NameSignal,
        MetricProgress,
        Account,
        Protocol,
        BadgeTrack,
        BadgeDefinition,
        BadgeAward,
        BadgeAwardMetadata,
        TokenLockWallet,
    )
}
