"""Completion log: which calendar days a habit was marked done."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Iterator, Optional

from ..domain.repositories import CompletionRepository
from ..models.habit import HabitCompletion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DayStatus:
    """One calendar day of a completion window."""

    day: date
    completed: bool


def window_start(end: date, days: int) -> date:
    """First day of the ``days``-long window ending on ``end`` (inclusive)."""

    if days < 1:
        raise ValueError("window must span at least one day")
    return end - timedelta(days=days - 1)


class CompletionLog:
    """Source of truth for completed days, keyed by ``(habit_id, date)``.

    ``today`` supplies the reference date when callers do not pass one, which
    keeps every query deterministic under test.
    """

    def __init__(
        self,
        repository: CompletionRepository,
        *,
        today: Callable[[], date] = date.today,
    ):
        self.repository = repository
        self.today = today

    def mark_complete(self, habit_id: str, day: Optional[date] = None) -> None:
        """Record a completion; completing an already completed day is a no-op."""
        day = day or self.today()
        if self.repository.add(habit_id, day):
            logger.info("Marked habit complete", extra={"habit_id": habit_id, "day": day})

    def mark_incomplete(self, habit_id: str, day: Optional[date] = None) -> None:
        """Remove a completion if present."""
        day = day or self.today()
        if self.repository.remove(habit_id, day):
            logger.info("Marked habit incomplete", extra={"habit_id": habit_id, "day": day})

    def is_completed(self, habit_id: str, day: Optional[date] = None) -> bool:
        return self.repository.exists(habit_id, day or self.today())

    def completed_dates(self, habit_id: str, start: date, end: date) -> set[date]:
        """Completed days in ``[start, end]``."""
        if start > end:
            return set()
        return self.repository.dates_between(habit_id, start, end)

    def window(
        self, habit_id: str, days: int, *, as_of: Optional[date] = None
    ) -> Iterator[DayStatus]:
        """Yield the last ``days`` calendar days ending ``as_of``, oldest first.

        One storage read happens when iteration starts; calling again gives a
        fresh iterator over the same days.
        """
        end = as_of or self.today()
        start = window_start(end, days)
        done = self.completed_dates(habit_id, start, end)
        for offset in range(days):
            day = start + timedelta(days=offset)
            yield DayStatus(day=day, completed=day in done)

    def records(self, habit_id: str) -> list[HabitCompletion]:
        """Every completion record for the habit, oldest first."""
        return self.repository.list_for_habit(habit_id)

    def all_records(self) -> dict[str, list[HabitCompletion]]:
        return self.repository.list_by_habit()

    def delete_all(self, habit_id: str) -> int:
        """Drop every record of a habit; used when the habit is deleted."""
        removed = self.repository.delete_for_habit(habit_id)
        logger.info("Deleted completion history", extra={"habit_id": habit_id, "removed": removed})
        return removed


__all__ = ["CompletionLog", "DayStatus", "window_start"]
