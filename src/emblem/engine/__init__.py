"""Ledger engine: positions, progress counters and badge awards."""
