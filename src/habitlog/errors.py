"""Exception types raised by HabitLog services."""

from __future__ import annotations

from typing import Iterable


class HabitLogError(Exception):
    """Base class for recoverable HabitLog errors."""


class HabitValidationError(HabitLogError):
    """Habit input broke one or more rules; nothing was written.

    ``errors`` holds every violated rule so callers can report them together.
    """

    def __init__(self, errors: Iterable[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid habit data")


class ImportFormatError(HabitLogError):
    """An import document was rejected as a whole."""

    def __init__(self, errors: Iterable[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid import document")


class StorageError(HabitLogError):
    """Persistence read/write failure surfaced at the storage boundary."""


__all__ = ["HabitLogError", "HabitValidationError", "ImportFormatError", "StorageError"]
