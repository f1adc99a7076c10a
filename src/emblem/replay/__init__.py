"""Event replay."""

from .runner import ReplayResult, ReplayRunner, iter_events

__all__ = ["ReplayResult", "ReplayRunner", "iter_events"]
