"""Error taxonomy for ledger processing.

Every error here is fatal for the event being processed: nothing is retried
inside the engine, retries belong to whoever delivers events.
"""


class LedgerError(Exception):
    """Base class for all ledger processing errors."""


class MissingEntityError(LedgerError):
    """A referenced anchor record was never created."""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} '{entity_id}' does not exist")


class InconsistentStateError(LedgerError):
    """An update would leave an entity violating one of its invariants."""


class StoreError(LedgerError):
    """Store I/O failure (unreadable record, failed write)."""
