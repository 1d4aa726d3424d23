"""Streak and success-rate statistics derived from the completion log.

Every figure is a pure function of the habit, its completion records and the
reference date, so results can be recomputed on demand and never persisted.

Two behaviours are kept on purpose and are visible to users:

* streaks are only looked for inside the lookback window (365 days by
  default), so a habit done every day for longer reports the window length;
* completion rates divide by the full window even when the habit is younger
  than the window, which understates the rate of brand-new habits.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Iterable, Optional, Sequence

from ..models.habit import Habit
from .completion_log import CompletionLog, DayStatus, window_start
from .habit_registry import HabitRegistry
from .notifications import StreakMilestoneReached

DEFAULT_LOOKBACK_DAYS = 365
DEFAULT_MILESTONES = (7, 30, 100)
ATTENTION_RATE_THRESHOLD = 50


def percent(part: int, whole: int) -> int:
    """Integer percentage rounded half-up; 0 when ``whole`` is 0."""

    if whole <= 0:
        return 0
    value = Decimal(100 * part) / Decimal(whole)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def trailing_run(days: Sequence[DayStatus]) -> int:
    """Consecutive completed days ending at the last day of ``days``."""

    run = 0
    for status in reversed(days):
        if not status.completed:
            break
        run += 1
    return run


def longest_run(days: Iterable[DayStatus]) -> int:
    """Longest run of consecutive completed days in ``days``."""

    longest = run = 0
    for status in days:
        if status.completed:
            run += 1
            longest = max(longest, run)
        else:
            run = 0
    return longest


@dataclass(frozen=True)
class HabitStats:
    """Point-in-time statistics for one habit."""

    habit: Habit
    current_streak: int
    longest_streak: int
    completion_rate_7: int
    completion_rate_30: int
    total_completions: int
    completed_today: bool


@dataclass(frozen=True)
class OverallStats:
    """Aggregate statistics across every habit."""

    total_habits: int = 0
    completed_today: int = 0
    today_progress: int = 0
    best_streak: int = 0
    overall_success: int = 0
    total_completions: int = 0


@dataclass(frozen=True)
class DailyProgress:
    """How many habits were completed on one day; chart input."""

    day: date
    completed: int
    total: int
    percentage: int

    @property
    def weekday(self) -> str:
        return calendar.day_abbr[self.day.weekday()]


class StatsEngine:
    """Computes streaks and rates from the registry and completion log."""

    def __init__(
        self,
        registry: HabitRegistry,
        completion_log: CompletionLog,
        *,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
        milestones: Iterable[int] = DEFAULT_MILESTONES,
        today: Optional[Callable[[], date]] = None,
    ):
        if lookback_days < 1:
            raise ValueError("lookback_days must be at least 1")
        self.registry = registry
        self.completion_log = completion_log
        self.lookback_days = lookback_days
        self.milestones = tuple(sorted(set(milestones)))
        self.today = today or completion_log.today

    # ------------------------------------------------------------------
    # Single-habit figures. Unknown habits give ``None`` ("no stats").
    # ------------------------------------------------------------------
    def current_streak(self, habit_id: str, as_of: Optional[date] = None) -> Optional[int]:
        """Consecutive completed days ending on ``as_of``; 0 if ``as_of`` is not done."""
        if self.registry.get(habit_id) is None:
            return None
        return trailing_run(self._lookback(habit_id, as_of))

    def longest_streak(
        self,
        habit_id: str,
        window_days: Optional[int] = None,
        as_of: Optional[date] = None,
    ) -> Optional[int]:
        """Longest run of completed days inside the window ending ``as_of``."""
        if window_days is not None and window_days < 1:
            raise ValueError("window_days must be at least 1")
        if self.registry.get(habit_id) is None:
            return None
        days = self.lookback_days if window_days is None else window_days
        return longest_run(self.completion_log.window(habit_id, days, as_of=self._day(as_of)))

    def completion_rate(
        self, habit_id: str, window_days: int, as_of: Optional[date] = None
    ) -> Optional[int]:
        """Percentage of the last ``window_days`` days that were completed."""
        if window_days < 1:
            raise ValueError("window_days must be at least 1")
        if self.registry.get(habit_id) is None:
            return None
        window = self.completion_log.window(habit_id, window_days, as_of=self._day(as_of))
        return percent(sum(1 for status in window if status.completed), window_days)

    def total_completions(self, habit_id: str, as_of: Optional[date] = None) -> Optional[int]:
        """Completed days within the lookback window."""
        if self.registry.get(habit_id) is None:
            return None
        return sum(1 for status in self._lookback(habit_id, as_of) if status.completed)

    def habit_stats(self, habit_id: str, as_of: Optional[date] = None) -> Optional[HabitStats]:
        habit = self.registry.get(habit_id)
        if habit is None:
            return None
        return self._stats_for(habit, self._day(as_of))

    def habit_history(
        self, habit_id: str, start: date, end: date, *, as_of: Optional[date] = None
    ) -> Optional[list[DayStatus]]:
        """Days of the lookback window that fall inside ``[start, end]``."""
        if self.registry.get(habit_id) is None:
            return None
        return [
            status
            for status in self._lookback(habit_id, as_of)
            if start <= status.day <= end
        ]

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------
    def overall_stats(
        self, habits: Optional[Sequence[Habit]] = None, as_of: Optional[date] = None
    ) -> OverallStats:
        """Today's progress, best streak and success since creation, across habits."""
        day = self._day(as_of)
        habits = self.registry.list_all() if habits is None else list(habits)
        if not habits:
            return OverallStats()

        completed_today = best_streak = total_completions = possible_days = 0
        for habit in habits:
            stats = self._stats_for(habit, day)
            completed_today += int(stats.completed_today)
            best_streak = max(best_streak, stats.longest_streak)
            total_completions += stats.total_completions
            possible_days += self._days_since_creation(habit, day)

        return OverallStats(
            total_habits=len(habits),
            completed_today=completed_today,
            today_progress=percent(completed_today, len(habits)),
            best_streak=best_streak,
            overall_success=min(percent(total_completions, possible_days), 100),
            total_completions=total_completions,
        )

    def all_stats(self, as_of: Optional[date] = None) -> list[HabitStats]:
        day = self._day(as_of)
        return [self._stats_for(habit, day) for habit in self.registry.list_all()]

    def progress_series(self, days: int, as_of: Optional[date] = None) -> list[DailyProgress]:
        """Per-day completed/total habit counts for the last ``days`` days."""
        end = self._day(as_of)
        start = window_start(end, days)
        habits = self.registry.list_all()
        done = [self.completion_log.completed_dates(h.id, start, end) for h in habits]

        series = []
        for offset in range(days):
            day = start + timedelta(days=offset)
            completed = sum(1 for dates in done if day in dates)
            series.append(
                DailyProgress(
                    day=day,
                    completed=completed,
                    total=len(habits),
                    percentage=percent(completed, len(habits)),
                )
            )
        return series

    def weekly_progress(self, as_of: Optional[date] = None) -> list[DailyProgress]:
        return self.progress_series(7, as_of)

    def monthly_progress(self, as_of: Optional[date] = None) -> list[DailyProgress]:
        return self.progress_series(30, as_of)

    def habits_needing_attention(self, as_of: Optional[date] = None) -> list[Habit]:
        """Habits with a 30-day rate under 50% or no current streak."""
        return [
            stats.habit
            for stats in self.all_stats(as_of)
            if stats.completion_rate_30 < ATTENTION_RATE_THRESHOLD or stats.current_streak == 0
        ]

    def top_performing(self, limit: int = 5, as_of: Optional[date] = None) -> list[HabitStats]:
        ranked = sorted(self.all_stats(as_of), key=lambda s: s.completion_rate_30, reverse=True)
        return ranked[:limit]

    def streak_milestones(self, as_of: Optional[date] = None) -> list[StreakMilestoneReached]:
        """Events for every habit whose current streak sits exactly on a milestone."""
        events = []
        for stats in self.all_stats(as_of):
            if stats.current_streak in self.milestones:
                events.append(StreakMilestoneReached(stats.habit.id, stats.current_streak))
        return events

    # ------------------------------------------------------------------
    def _day(self, as_of: Optional[date]) -> date:
        return as_of or self.today()

    def _lookback(self, habit_id: str, as_of: Optional[date]) -> list[DayStatus]:
        return list(
            self.completion_log.window(habit_id, self.lookback_days, as_of=self._day(as_of))
        )

    def _stats_for(self, habit: Habit, day: date) -> HabitStats:
        days = self._lookback(habit.id, day)
        recent = days if len(days) >= 30 else list(self.completion_log.window(habit.id, 30, as_of=day))
        return HabitStats(
            habit=habit,
            current_streak=trailing_run(days),
            longest_streak=longest_run(days),
            completion_rate_7=percent(sum(s.completed for s in recent[-7:]), 7),
            completion_rate_30=percent(sum(s.completed for s in recent[-30:]), 30),
            total_completions=sum(s.completed for s in days),
            completed_today=days[-1].completed,
        )

    def _days_since_creation(self, habit: Habit, day: date) -> int:
        """Calendar days from creation to ``day`` inclusive, capped at the lookback."""
        elapsed = (day - habit.created_on).days + 1
        return max(0, min(elapsed, self.lookback_days))


__all__ = [
    "DailyProgress",
    "HabitStats",
    "OverallStats",
    "StatsEngine",
    "longest_run",
    "percent",
    "trailing_run",
]
