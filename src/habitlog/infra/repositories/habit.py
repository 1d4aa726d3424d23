"""SQLModel implementation of Habit repository."""

from __future__ import annotations

from typing import Callable, Optional

from sqlmodel import Session, select

from ...models.habit import Habit
from ..database import storage_guard


class SQLModelHabitRepository:
    """SQLModel-based habit repository implementation."""

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    @storage_guard(lambda: None)
    def get_by_id(self, habit_id: str) -> Optional[Habit]:
        """Retrieve a habit by ID."""
        with self.session_factory() as session:
            return session.get(Habit, habit_id)

    @storage_guard(list)
    def list_all(self) -> list[Habit]:
        """List every habit, oldest first."""
        with self.session_factory() as session:
            statement = select(Habit).order_by(Habit.created_at, Habit.name)  # type: ignore
            return list(session.exec(statement).all())

    @storage_guard(lambda: None)
    def create(self, habit: Habit) -> Optional[Habit]:
        """Create a new habit."""
        with self.session_factory() as session:
            session.add(habit)
            session.commit()
            session.refresh(habit)
            return habit

    @storage_guard(lambda: None)
    def update(self, habit: Habit) -> Optional[Habit]:
        """Update an existing habit."""
        with self.session_factory() as session:
            merged = session.merge(habit)
            session.commit()
            session.refresh(merged)
            return merged

    @storage_guard(lambda: False)
    def delete(self, habit_id: str) -> bool:
        """Delete a habit by ID."""
        with self.session_factory() as session:
            habit = session.get(Habit, habit_id)
            if habit is None:
                return False
            session.delete(habit)
            session.commit()
            return True


__all__ = ["SQLModelHabitRepository"]
