"""Habit repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from ...models.habit import Habit


class HabitRepository(Protocol):
    """Repository for managing habit definitions."""

    def get_by_id(self, habit_id: str) -> Optional[Habit]:
        """Retrieve a habit by ID."""
        ...

    def list_all(self) -> list[Habit]:
        """List every habit, oldest first."""
        ...

    def create(self, habit: Habit) -> Optional[Habit]:
        """Persist a new habit; ``None`` when storage is unavailable."""
        ...

    def update(self, habit: Habit) -> Optional[Habit]:
        """Persist changes to an existing habit."""
        ...

    def delete(self, habit_id: str) -> bool:
        """Delete a habit by ID, returning whether a row was removed."""
        ...
