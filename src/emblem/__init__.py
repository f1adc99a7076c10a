"""Emblem - incremental curation ledger and achievement engine."""

__version__ = "0.4.0"
