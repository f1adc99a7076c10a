"""Entity store backends."""

from .backend import EntityStore, FileStore, MemoryStore, load_or_create

__all__ = [
    "EntityStore",
    "FileStore",
    "MemoryStore",
    "load_or_create",
]
