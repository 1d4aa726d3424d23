"""Tests for completion rates, aggregates and chart series."""

from __future__ import annotations

from datetime import timedelta

import pytest

from habitlog.services.notifications import StreakMilestoneReached
from habitlog.services.stats import OverallStats, StatsEngine, percent


@pytest.mark.parametrize(
    ("part", "whole", "expected"),
    [(0, 7, 0), (5, 7, 71), (6, 7, 86), (1, 8, 13), (7, 7, 100), (3, 0, 0)],
)
def test_percent_rounds_half_up(part, whole, expected):
    assert percent(part, whole) == expected


def test_lookback_must_be_positive(app):
    with pytest.raises(ValueError):
        StatsEngine(app.registry, app.completion_log, lookback_days=0)


class TestCompletionRate:
    def test_five_of_last_seven(self, app, habit_factory, complete_days):
        habit = habit_factory()
        complete_days(habit.id, [0, 1, 3, 4, 6])

        assert app.stats.completion_rate(habit.id, 7) == 71

    def test_empty_and_full(self, app, habit_factory, complete_days):
        idle = habit_factory(name="Idle")
        busy = habit_factory(name="Busy")
        complete_days(busy.id, range(30))

        assert app.stats.completion_rate(idle.id, 30) == 0
        assert app.stats.completion_rate(busy.id, 30) == 100
        assert app.stats.completion_rate(busy.id, 7) == 100

    def test_young_habit_divides_by_full_window(self, app, habit_factory, complete_days, today):
        habit = habit_factory(created_on=today)
        complete_days(habit.id, [0])

        assert app.stats.completion_rate(habit.id, 7) == 14

    def test_completions_outside_window_ignored(self, app, habit_factory, complete_days):
        habit = habit_factory()
        complete_days(habit.id, [7, 8, 9])

        assert app.stats.completion_rate(habit.id, 7) == 0

    def test_window_must_be_positive(self, app, habit_factory):
        habit = habit_factory()
        with pytest.raises(ValueError):
            app.stats.completion_rate(habit.id, 0)

    def test_unknown_habit(self, app):
        assert app.stats.completion_rate("missing", 7) is None


class TestHabitStats:
    def test_snapshot(self, app, habit_factory, complete_days):
        habit = habit_factory()
        complete_days(habit.id, [0, 1, 2, 4, 5, 6, 7, 8, 9])

        stats = app.stats.habit_stats(habit.id)

        assert stats.habit.id == habit.id
        assert stats.current_streak == 3
        assert stats.longest_streak == 6
        assert stats.completion_rate_7 == 86
        assert stats.completion_rate_30 == 30
        assert stats.total_completions == 9
        assert stats.completed_today is True

    def test_short_lookback_still_reports_thirty_day_rate(self, app, habit_factory, complete_days):
        habit = habit_factory()
        complete_days(habit.id, range(15))
        engine = StatsEngine(app.registry, app.completion_log, lookback_days=10, today=app.today)

        stats = engine.habit_stats(habit.id)

        assert stats.current_streak == 10
        assert stats.completion_rate_30 == 50

    def test_history_range(self, app, habit_factory, complete_days, days_ago):
        habit = habit_factory()
        complete_days(habit.id, [1, 3])

        history = app.stats.habit_history(habit.id, days_ago(3), days_ago(1))

        assert [(status.day, status.completed) for status in history] == [
            (days_ago(3), True),
            (days_ago(2), False),
            (days_ago(1), True),
        ]

    def test_unknown_habit(self, app):
        assert app.stats.habit_stats("missing") is None
        assert app.stats.total_completions("missing") is None
        assert app.stats.habit_history("missing", app.today(), app.today()) is None


class TestOverallStats:
    def test_no_habits(self, app):
        assert app.stats.overall_stats() == OverallStats()

    def test_aggregates_across_habits(self, app, habit_factory, complete_days):
        steady = habit_factory(name="Steady")
        lapsed = habit_factory(name="Lapsed")
        complete_days(steady.id, range(15))
        complete_days(lapsed.id, [5, 6])

        overall = app.stats.overall_stats()

        assert overall.total_habits == 2
        assert overall.completed_today == 1
        assert overall.today_progress == 50
        assert overall.best_streak == 15
        assert overall.total_completions == 17
        # 17 of 60 possible days
        assert overall.overall_success == 28

    def test_success_counts_creation_day(self, app, habit_factory, complete_days, today):
        habit = habit_factory(created_on=today)
        complete_days(habit.id, [0])

        assert app.stats.overall_stats().overall_success == 100

    def test_success_capped_at_hundred(self, app, habit_factory, complete_days, today):
        habit = habit_factory(created_on=today)
        complete_days(habit.id, range(5))

        assert app.stats.overall_stats().overall_success == 100

    def test_habit_created_after_reference_day(self, app, habit_factory, complete_days, today):
        habit = habit_factory(created_on=today + timedelta(days=3))
        complete_days(habit.id, [0])

        overall = app.stats.overall_stats()

        assert overall.total_completions == 1
        assert overall.overall_success == 0

    def test_days_since_creation_capped_at_lookback(self, app, habit_factory, days_ago):
        old = habit_factory(created_on=days_ago(500))
        young = habit_factory(created_on=days_ago(9))
        fresh = habit_factory(created_on=days_ago(0))

        assert app.stats._days_since_creation(old, app.today()) == 365
        assert app.stats._days_since_creation(young, app.today()) == 10
        assert app.stats._days_since_creation(fresh, app.today()) == 1


class TestProgressAndRanking:
    def test_weekly_progress(self, app, habit_factory, complete_days, today, days_ago):
        first = habit_factory(name="First")
        second = habit_factory(name="Second")
        complete_days(first.id, [0, 1])
        complete_days(second.id, [1])

        series = app.stats.weekly_progress()

        assert len(series) == 7
        assert series[0].day == days_ago(6)
        assert series[-1].day == today
        assert series[-1].weekday == "Fri"
        assert (series[-1].completed, series[-1].total, series[-1].percentage) == (1, 2, 50)
        assert (series[-2].completed, series[-2].percentage) == (2, 100)
        assert series[0].percentage == 0

    def test_monthly_progress_without_habits(self, app):
        series = app.stats.monthly_progress()

        assert len(series) == 30
        assert all(point.total == 0 and point.percentage == 0 for point in series)

    def test_needing_attention(self, app, habit_factory, complete_days):
        healthy = habit_factory(name="Healthy")
        slipping = habit_factory(name="Slipping")
        broken = habit_factory(name="Broken")
        complete_days(healthy.id, range(30))
        complete_days(slipping.id, [0, 1])
        complete_days(broken.id, range(1, 30))

        names = {habit.name for habit in app.stats.habits_needing_attention()}

        assert names == {"Slipping", "Broken"}

    def test_top_performing(self, app, habit_factory, complete_days):
        low = habit_factory(name="Low")
        high = habit_factory(name="High")
        mid = habit_factory(name="Mid")
        complete_days(low.id, [0])
        complete_days(high.id, range(20))
        complete_days(mid.id, range(10))

        ranked = app.stats.top_performing(limit=2)

        assert [stats.habit.name for stats in ranked] == ["High", "Mid"]


class TestMilestones:
    def test_exact_milestones_only(self, app, habit_factory, complete_days):
        week = habit_factory(name="Week")
        longer = habit_factory(name="Longer")
        complete_days(week.id, range(7))
        complete_days(longer.id, range(8))

        events = app.stats.streak_milestones()

        assert events == [StreakMilestoneReached(habit_id=week.id, count=7)]

    def test_custom_milestones(self, app, habit_factory, complete_days):
        habit = habit_factory()
        complete_days(habit.id, range(3))
        engine = StatsEngine(app.registry, app.completion_log, milestones=[3], today=app.today)

        assert [event.count for event in engine.streak_milestones()] == [3]
