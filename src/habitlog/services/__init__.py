"""Service module exports."""

from . import completion_log, habit_registry, notifications, stats, transfer

__all__ = [
    "completion_log",
    "habit_registry",
    "notifications",
    "stats",
    "transfer",
]
