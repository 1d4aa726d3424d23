"""Notifier contract and the events/messages the core hands to it."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakMilestoneReached:
    """Emitted when a habit's current streak equals a milestone count."""

    habit_id: str
    count: int


@dataclass(frozen=True)
class Notification:
    """A message ready for whatever delivery channel is plugged in."""

    title: str
    body: str
    tag: str
    habit_id: Optional[str] = None
    data: dict = field(default_factory=dict)


NotificationSink = Callable[[Notification], None]


def log_sink(notification: Notification) -> None:
    """Default delivery: write the notification to the application log."""

    logger.info(
        "%s: %s",
        notification.title,
        notification.body,
        extra={"tag": notification.tag, "habit_id": notification.habit_id},
    )


class Notifier(Protocol):
    """Consumer of reminder schedules and streak milestones."""

    def schedule_reminder(self, habit_id: str, time_of_day: str, message: str) -> bool:
        """Deliver ``message`` daily at ``time_of_day`` ("HH:MM")."""
        ...

    def clear_reminder(self, habit_id: str) -> None:
        ...

    def send_streak_notification(self, habit_id: str, streak_count: int) -> None:
        ...

    def send_daily_summary(self, stats) -> None:
        """Summarise an ``OverallStats`` snapshot."""
        ...


def reminder_notification(habit_id: str, habit_name: str, message: str) -> Notification:
    return Notification(
        title=f"Habit Reminder: {habit_name}",
        body=message or "Time to complete your habit!",
        tag="habit-reminder",
        habit_id=habit_id,
    )


def streak_notification(habit_id: str, habit_name: str, streak_count: int) -> Notification:
    return Notification(
        title="Streak Milestone!",
        body=f"Amazing! You've maintained {habit_name} for {streak_count} days!",
        tag="streak",
        habit_id=habit_id,
        data={"count": streak_count},
    )


def daily_summary_notification(stats) -> Notification:
    return Notification(
        title="Daily Habit Summary",
        body=(
            f"You completed {stats.completed_today}/{stats.total_habits} habits today "
            f"({stats.today_progress}%)"
        ),
        tag="daily-summary",
    )


__all__ = [
    "Notification",
    "NotificationSink",
    "Notifier",
    "StreakMilestoneReached",
    "daily_summary_notification",
    "log_sink",
    "reminder_notification",
    "streak_notification",
]
