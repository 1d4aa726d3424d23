"""SQLModel implementation of the completion record repository."""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Callable

from sqlalchemy import delete
from sqlmodel import Session, select

from ...models.habit import HabitCompletion
from ..database import storage_guard


class SQLModelCompletionRepository:
    """Completion records keyed by ``(habit_id, completed_on)``."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    @storage_guard(lambda: False)
    def add(self, habit_id: str, completed_on: date) -> bool:
        """Insert a record; an existing one is left untouched."""
        with self.session_factory() as session:
            if session.get(HabitCompletion, (habit_id, completed_on)) is not None:
                return False
            session.add(HabitCompletion(habit_id=habit_id, completed_on=completed_on))
            session.commit()
            return True

    @storage_guard(lambda: False)
    def remove(self, habit_id: str, completed_on: date) -> bool:
        with self.session_factory() as session:
            record = session.get(HabitCompletion, (habit_id, completed_on))
            if record is None:
                return False
            session.delete(record)
            session.commit()
            return True

    @storage_guard(lambda: False)
    def exists(self, habit_id: str, completed_on: date) -> bool:
        with self.session_factory() as session:
            return session.get(HabitCompletion, (habit_id, completed_on)) is not None

    @storage_guard(set)
    def dates_between(self, habit_id: str, start: date, end: date) -> set[date]:
        """Completed days within ``[start, end]`` inclusive."""
        with self.session_factory() as session:
            statement = (
                select(HabitCompletion.completed_on)
                .where(HabitCompletion.habit_id == habit_id)
                .where(HabitCompletion.completed_on >= start)
                .where(HabitCompletion.completed_on <= end)
            )
            return set(session.exec(statement).all())

    @storage_guard(list)
    def list_for_habit(self, habit_id: str) -> list[HabitCompletion]:
        with self.session_factory() as session:
            statement = (
                select(HabitCompletion)
                .where(HabitCompletion.habit_id == habit_id)
                .order_by(HabitCompletion.completed_on)  # type: ignore
            )
            return list(session.exec(statement).all())

    @storage_guard(dict)
    def list_by_habit(self) -> dict[str, list[HabitCompletion]]:
        with self.session_factory() as session:
            statement = select(HabitCompletion).order_by(
                HabitCompletion.habit_id, HabitCompletion.completed_on  # type: ignore
            )
            grouped: dict[str, list[HabitCompletion]] = defaultdict(list)
            for record in session.exec(statement).all():
                grouped[record.habit_id].append(record)
            return dict(grouped)

    @storage_guard(lambda: 0)
    def delete_for_habit(self, habit_id: str) -> int:
        with self.session_factory() as session:
            result = session.execute(
                delete(HabitCompletion).where(HabitCompletion.habit_id == habit_id)
            )
            session.commit()
            return result.rowcount or 0


__all__ = ["SQLModelCompletionRepository"]
