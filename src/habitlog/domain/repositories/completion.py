"""Completion record repository protocol."""

from __future__ import annotations

from datetime import date
from typing import Protocol

from ...models.habit import HabitCompletion


class CompletionRepository(Protocol):
    """Repository for the date-keyed completion log."""

    def add(self, habit_id: str, completed_on: date) -> bool:
        """Insert a record unless one exists; returns whether a row was added."""
        ...

    def remove(self, habit_id: str, completed_on: date) -> bool:
        """Remove a record if present; returns whether a row was removed."""
        ...

    def exists(self, habit_id: str, completed_on: date) -> bool:
        """Membership test for ``(habit_id, completed_on)``."""
        ...

    def dates_between(self, habit_id: str, start: date, end: date) -> set[date]:
        """Completed days for a habit within ``[start, end]``."""
        ...

    def list_for_habit(self, habit_id: str) -> list[HabitCompletion]:
        """All records for a habit, oldest first."""
        ...

    def list_by_habit(self) -> dict[str, list[HabitCompletion]]:
        """Every record grouped by habit id."""
        ...

    def delete_for_habit(self, habit_id: str) -> int:
        """Remove every record of a habit; returns the number removed."""
        ...
