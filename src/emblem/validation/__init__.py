"""Consistency checks for stored ledger state."""

from .sanity_checks import LedgerChecker, ValidationWarning

__all__ = [
    "LedgerChecker",
    "ValidationWarning",
]
