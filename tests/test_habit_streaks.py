"""Tests for streak calculations."""

from __future__ import annotations

from datetime import date

import pytest

from habitlog.services.completion_log import DayStatus
from habitlog.services.stats import longest_run, trailing_run


def _days(pattern: str) -> list[DayStatus]:
    """Build a window from a pattern like ``"x.xx"`` (oldest first, x = completed)."""
    return [DayStatus(day=date(2024, 1, 1 + i), completed=c == "x") for i, c in enumerate(pattern)]


@pytest.mark.parametrize(
    ("pattern", "current", "longest"),
    [
        ("", 0, 0),
        ("....", 0, 0),
        ("xxxx", 4, 4),
        ("xx.x", 1, 2),
        ("xxx.", 0, 3),
        ("xxxxxx.xxx", 3, 6),
    ],
)
def test_run_helpers(pattern, current, longest):
    days = _days(pattern)
    assert trailing_run(days) == current
    assert longest_run(days) == longest


def test_no_completions(app, habit_factory):
    habit = habit_factory()

    assert app.stats.current_streak(habit.id) == 0
    assert app.stats.longest_streak(habit.id) == 0


def test_consecutive_days_ending_today(app, habit_factory, complete_days):
    habit = habit_factory()
    complete_days(habit.id, range(5))

    assert app.stats.current_streak(habit.id) == 5
    assert app.stats.longest_streak(habit.id) == 5


def test_broken_streak_with_today_completed(app, habit_factory, complete_days):
    habit = habit_factory()
    # today and two prior days, a gap three days ago, then six more days
    complete_days(habit.id, [0, 1, 2, 4, 5, 6, 7, 8, 9])

    assert app.stats.current_streak(habit.id) == 3
    assert app.stats.longest_streak(habit.id) == 6


def test_broken_streak_with_today_unmarked(app, habit_factory, complete_days):
    habit = habit_factory()
    complete_days(habit.id, [1, 2, 4, 5, 6, 7, 8, 9])

    assert app.stats.current_streak(habit.id) == 0
    assert app.stats.longest_streak(habit.id) == 6


def test_unmarking_today_resets_current_streak(app, habit_factory, complete_days, today):
    habit = habit_factory()
    complete_days(habit.id, range(4))
    app.completion_log.mark_incomplete(habit.id, today)

    assert app.stats.current_streak(habit.id) == 0
    assert app.stats.longest_streak(habit.id) == 3


def test_streak_as_of_earlier_day(app, habit_factory, complete_days, days_ago):
    habit = habit_factory()
    complete_days(habit.id, [2, 3, 4])

    assert app.stats.current_streak(habit.id, as_of=days_ago(2)) == 3
    assert app.stats.current_streak(habit.id) == 0


def test_streaks_capped_at_lookback(app, habit_factory, complete_days):
    habit = habit_factory(created_on=None)
    complete_days(habit.id, range(370))

    assert app.stats.current_streak(habit.id) == 365
    assert app.stats.longest_streak(habit.id) == 365


def test_longest_streak_window_argument(app, habit_factory, complete_days):
    habit = habit_factory()
    complete_days(habit.id, [0, 1, 10, 11, 12, 13])

    assert app.stats.longest_streak(habit.id) == 4
    assert app.stats.longest_streak(habit.id, window_days=5) == 2


def test_longest_never_below_current(app, habit_factory, complete_days):
    habit = habit_factory()
    complete_days(habit.id, [0, 1, 2, 3, 5, 6])

    current = app.stats.current_streak(habit.id)
    assert app.stats.longest_streak(habit.id) >= current


def test_unknown_habit_has_no_streak(app):
    assert app.stats.current_streak("missing") is None
    assert app.stats.longest_streak("missing") is None


@pytest.mark.parametrize("window_days", [0, -3])
def test_longest_streak_rejects_empty_window(app, habit_factory, window_days):
    habit = habit_factory()
    with pytest.raises(ValueError):
        app.stats.longest_streak(habit.id, window_days=window_days)
