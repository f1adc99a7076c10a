"""Replay runner - feed recorded events through the ledger one at a time.

Event format (one JSON object per line):

    {"type": "subgraph_published", "owner": ..., "subgraph_number": ...}
    {"type": "lock_wallet_created", "wallet": ..., "beneficiary": ...}
    {"type": "deposit", "curator": ..., "subgraph_id": ...,
     "name_signal": int, "signal": str, "tokens": int}
    {"type": "withdrawal", ...same fields as deposit...}

Every event also carries ``block_number``, ``transaction_hash`` and
``timestamp`` (lock wallet events may omit them).
"""

import json
import logging
from collections import Counter
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Mapping

from ..config.schema import Config
from ..engine.badges import Provenance
from ..engine.curation import CurationProcessor
from ..engine.models import EntityStats
from ..store.backend import EntityStore

logger = logging.getLogger(__name__)

EVENT_TYPES = ("lock_wallet_created", "subgraph_published", "deposit", "withdrawal")


@dataclass
class ReplayResult:
    """Outcome of a replay."""
    config_hash: str
    events_processed: int
    event_counts: Dict[str, int]
    stats: EntityStats


def iter_events(path: Path) -> Iterator[Dict[str, Any]]:
    """Yield events from a JSON-lines file, skipping blank lines."""
    with open(path, "r") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError as e:
                raise ValueError(f"{path}:{line_number}: invalid JSON ({e})") from e


def _integer(event: Mapping[str, Any], key: str) -> int:
    """Read an integer field given as a JSON integer or a string of digits."""
    value = event[key]
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
    raise ValueError(f"Field '{key}' must be an integer or integer string, got {value!r}")


def _amount(event: Mapping[str, Any], key: str) -> str:
    """Read a decimal field given as a JSON integer or a decimal string."""
    value = event[key]
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        try:
            if Decimal(value).is_finite():
                return value
        except InvalidOperation:
            pass
    raise ValueError(f"Field '{key}' must be an integer or decimal string, got {value!r}")


def _provenance(event: Mapping[str, Any]) -> Provenance:
    return Provenance(
        block_number=_integer(event, "block_number"),
        transaction_hash=str(event["transaction_hash"]),
        timestamp=_integer(event, "timestamp"),
    )


class ReplayRunner:
    """Drives a ``CurationProcessor`` from recorded events."""

    def __init__(self, config: Config, store: EntityStore):
        """
        Initialize replay runner.

        Args:
            config: Ledger configuration
            store: Store to replay into (may already hold earlier state)
        """
        self.config = config
        self.store = store
        self.processor = CurationProcessor(config, store)

    def apply(self, event: Mapping[str, Any]) -> None:
        """
        Process a single event to completion.

        Raises:
            ValueError: If the event type is unknown or a numeric field is
                not an integer or numeric string (floats are rejected)
            KeyError: If a required field is missing
        """
        event_type = event.get("type")

        if event_type == "lock_wallet_created":
            self.processor.on_lock_wallet_created(event["wallet"], event["beneficiary"])
        elif event_type == "subgraph_published":
            self.processor.on_subgraph_published(
                event["owner"], str(event["subgraph_number"]), _provenance(event)
            )
        elif event_type == "deposit":
            self.processor.on_deposit(
                event["curator"],
                event["subgraph_id"],
                _integer(event, "name_signal"),
                _amount(event, "signal"),
                _integer(event, "tokens"),
                _provenance(event),
            )
        elif event_type == "withdrawal":
            self.processor.on_withdrawal(
                event["curator"],
                event["subgraph_id"],
                _integer(event, "name_signal"),
                _amount(event, "signal"),
                _integer(event, "tokens"),
                _provenance(event),
            )
        else:
            raise ValueError(f"Unknown event type: {event_type!r} (expected one of {', '.join(EVENT_TYPES)})")

    def run(self, events: Iterable[Mapping[str, Any]]) -> ReplayResult:
        """
        Replay events in order.

        Processing stops at the first failing event; the error propagates
        with every earlier event fully applied.

        Returns:
            ReplayResult with per-type counts and final global stats
        """
        counts: Counter = Counter()
        for index, event in enumerate(events):
            try:
                self.apply(event)
            except Exception:
                logger.error(f"Replay stopped at event #{index} ({event.get('type')!r})")
                raise
            counts[event["type"]] += 1

        total = sum(counts.values())
        logger.info(f"Replayed {total} events: {dict(counts)}")
        return ReplayResult(
            config_hash=self.config.compute_hash(),
            events_processed=total,
            event_counts=dict(counts),
            stats=self.processor.stats.get_or_init(),
        )
