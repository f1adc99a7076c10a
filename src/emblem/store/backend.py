"""
Entity store backends.

The engine needs exactly two primitives from durable storage: load a record
by (kind, id) and save a single record. There is no multi-record atomicity,
so callers order their saves so every record is valid on its own.

Backends:
1. MemoryStore - serialized records in dictionaries (tests, replays)
2. FileStore   - one JSON document per kind under a directory

Both persist the serialized form, so a loaded entity is always a fresh
object and never aliases something saved earlier.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import ValidationError

from ..engine.errors import StoreError
from ..engine.models import Entity

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)


class EntityStore(ABC):
    """Keyed record storage used by every engine component."""

    @abstractmethod
    def _read(self, kind: str, entity_id: str) -> Optional[Dict[str, Any]]:
        """Return the raw record or None."""

    @abstractmethod
    def _write(self, kind: str, entity_id: str, data: Dict[str, Any]) -> None:
        """Persist one raw record."""

    @abstractmethod
    def ids(self, kind: Type[Entity]) -> List[str]:
        """List ids stored for a kind."""

    def load(self, kind: Type[E], entity_id: str) -> Optional[E]:
        """Load a record, or None when absent."""
        data = self._read(kind.KIND, entity_id)
        if data is None:
            return None
        try:
            return kind.from_dict(data)
        except ValidationError as e:
            raise StoreError(f"Corrupt {kind.KIND} record '{entity_id}': {e}") from e

    def save(self, entity: Entity) -> None:
        """Persist a single record."""
        self._write(entity.KIND, entity.id, entity.to_dict())

    def all(self, kind: Type[E]) -> List[E]:
        """Load every record of a kind."""
        return [self.load(kind, entity_id) for entity_id in self.ids(kind)]

    def count(self, kind: Type[Entity]) -> int:
        return len(self.ids(kind))


def load_or_create(
    store: EntityStore,
    kind: Type[E],
    entity_id: str,
    initializer: Callable[[str], E],
) -> Tuple[E, bool]:
    """
    Get-or-create a record.

    The new record is saved before returning, so side effects tied to
    ``created`` run after the record exists.

    Args:
        store: Entity store
        kind: Entity class
        entity_id: Record id
        initializer: Builds the zero-state record for an id

    Returns:
        (entity, created)
    """
    entity = store.load(kind, entity_id)
    if entity is not None:
        return entity, False

    entity = initializer(entity_id)
    store.save(entity)
    logger.debug(f"Created {kind.KIND} '{entity_id}'")
    return entity, True


class MemoryStore(EntityStore):
    """In-memory store backend."""

    def __init__(self):
        self._data: Dict[str, Dict[str, str]] = {}  # kind -> id -> JSON text

    def _read(self, kind: str, entity_id: str) -> Optional[Dict[str, Any]]:
        raw = self._data.get(kind, {}).get(entity_id)
        return json.loads(raw) if raw is not None else None

    def _write(self, kind: str, entity_id: str, data: Dict[str, Any]) -> None:
        self._data.setdefault(kind, {})[entity_id] = json.dumps(data)

    def ids(self, kind: Type[Entity]) -> List[str]:
        return list(self._data.get(kind.KIND, {}))


class FileStore(EntityStore):
    """
    Local file store backend.

    Layout: ``<root>/<Kind>.json`` holding ``{id: record}``. Each kind is
    cached after its first read; every write rewrites the kind's file via a
    temporary file and ``os.replace`` so a crash never leaves half a file.
    A failed write removes its temporary file.

    Every save rewrites the whole file for its kind, so a replay costs
    O(n^2) in the number of records of a kind; large replays are much
    cheaper against ``MemoryStore``.
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create store directory {self.root}: {e}") from e
        self._cache: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def _path(self, kind: str) -> Path:
        return self.root / f"{kind}.json"

    def _records(self, kind: str) -> Dict[str, Dict[str, Any]]:
        if kind not in self._cache:
            path = self._path(kind)
            if path.exists():
                try:
                    with open(path, "r") as f:
                        self._cache[kind] = json.load(f)
                except (OSError, json.JSONDecodeError) as e:
                    raise StoreError(f"Failed to read {path}: {e}") from e
            else:
                self._cache[kind] = {}
        return self._cache[kind]

    def _read(self, kind: str, entity_id: str) -> Optional[Dict[str, Any]]:
        record = self._records(kind).get(entity_id)
        # Copy so callers never mutate the cache
        return json.loads(json.dumps(record)) if record is not None else None

    def _write(self, kind: str, entity_id: str, data: Dict[str, Any]) -> None:
        records = dict(self._records(kind))
        records[entity_id] = data
        path = self._path(kind)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{kind}.", suffix=".tmp")
        except OSError as e:
            raise StoreError(f"Failed to write {kind} '{entity_id}' to {path}: {e}") from e
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(records, f, indent=2, sort_keys=True)
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as e:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreError(f"Failed to write {kind} '{entity_id}' to {path}: {e}") from e
        self._cache[kind] = records

    def ids(self, kind: Type[Entity]) -> List[str]:
        return list(self._records(kind.KIND))
