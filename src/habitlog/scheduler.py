"""Background scheduler for reminders, milestone checks and maintenance.

Runs outside the core: every job pulls fresh numbers from the stats engine
and hands the result to a notification sink. ``stop()`` cancels all jobs.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import TYPE_CHECKING, Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from .domain.validation import parse_reminder_time
from .errors import HabitLogError
from .services.notifications import (
    Notification,
    NotificationSink,
    StreakMilestoneReached,
    daily_summary_notification,
    log_sink,
    reminder_notification,
    streak_notification,
)
from .services.transfer import create_backup

if TYPE_CHECKING:
    from .context import AppContext
    from .services.stats import OverallStats

logger = logging.getLogger(__name__)

REMINDER_JOB_PREFIX = "reminder:"
LOG_MAX_AGE_DAYS = 30


class HabitScheduler:
    """APScheduler-backed notifier and periodic task runner."""

    def __init__(
        self,
        ctx: AppContext,
        *,
        sink: NotificationSink = log_sink,
        today: Optional[Callable[[], date]] = None,
    ):
        """Initialize the scheduler with app context.

        Args:
            ctx: Application context with repositories, services and config
            sink: Where notifications are delivered
            today: Reference-date provider, defaults to the context clock
        """
        self.ctx = ctx
        self.sink = sink
        self.today = today or ctx.today
        self.scheduler: Optional[BackgroundScheduler] = None
        self._announced: set[tuple[str, int, date]] = set()

    @property
    def running(self) -> bool:
        return self.scheduler is not None

    def start(self) -> None:
        """Start the background scheduler and register the standing jobs."""
        if self.scheduler is not None:
            logger.warning("Scheduler already running")
            return

        config = self.ctx.config
        self.scheduler = BackgroundScheduler()

        self.scheduler.add_job(
            func=self.check_milestones,
            trigger=IntervalTrigger(minutes=config.MILESTONE_CHECK_MINUTES),
            id="milestone_check",
            name="Streak Milestone Check",
            replace_existing=True,
        )

        summary_at = parse_reminder_time(config.DAILY_SUMMARY_TIME) or "21:00"
        hour, minute = (int(part) for part in summary_at.split(":"))
        self.scheduler.add_job(
            func=self.send_daily_summary_now,
            trigger=CronTrigger(hour=hour, minute=minute),
            id="daily_summary",
            name="Daily Habit Summary",
            replace_existing=True,
        )
        logger.info("Scheduled daily summary at %s", summary_at)

        if self._is_backup_enabled():
            self.scheduler.add_job(
                func=self._run_backup,
                trigger=CronTrigger(hour=3, minute=0),
                id="nightly_backup",
                name="Nightly JSON Backup",
                replace_existing=True,
            )
            logger.info("Scheduled nightly backup at 3:00 AM")

        self.scheduler.add_job(
            func=self._cleanup_logs,
            trigger=CronTrigger(hour=4, minute=0),
            id="log_cleanup",
            name="Old Log Cleanup",
            replace_existing=True,
        )

        self.scheduler.start()
        self.load_reminders()
        logger.info("Background scheduler started")

    def stop(self) -> None:
        """Cancel every job and stop the scheduler thread."""
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=True)
            self.scheduler = None
            logger.info("Background scheduler stopped")

    # ------------------------------------------------------------------
    # Notifier contract
    # ------------------------------------------------------------------
    def schedule_reminder(self, habit_id: str, time_of_day: str, message: str) -> bool:
        """Remember and (when running) schedule a daily reminder for a habit."""
        try:
            normalised = parse_reminder_time(time_of_day)
        except ValueError:
            normalised = None
        if normalised is None:
            logger.warning("Ignoring invalid reminder time %r", time_of_day, extra={"habit_id": habit_id})
            return False

        reminders = dict(self.ctx.settings_repo.get("reminderTimes", {}) or {})
        reminders[habit_id] = {"time": normalised, "message": message}
        self.ctx.settings_repo.set("reminderTimes", reminders)

        if self.scheduler is not None:
            hour, minute = (int(part) for part in normalised.split(":"))
            self.scheduler.add_job(
                func=self._deliver_reminder,
                trigger=CronTrigger(hour=hour, minute=minute),
                args=[habit_id, message],
                id=f"{REMINDER_JOB_PREFIX}{habit_id}",
                name=f"Reminder for {habit_id}",
                replace_existing=True,
            )
        logger.info("Reminder scheduled", extra={"habit_id": habit_id, "time": normalised})
        return True

    def clear_reminder(self, habit_id: str) -> None:
        if self.scheduler is not None:
            try:
                self.scheduler.remove_job(f"{REMINDER_JOB_PREFIX}{habit_id}")
            except JobLookupError:
                logger.debug("No reminder job for %s", habit_id)

        reminders = dict(self.ctx.settings_repo.get("reminderTimes", {}) or {})
        if reminders.pop(habit_id, None) is not None:
            self.ctx.settings_repo.set("reminderTimes", reminders)
            logger.info("Reminder cleared", extra={"habit_id": habit_id})

    def send_streak_notification(self, habit_id: str, streak_count: int) -> None:
        habit = self.ctx.registry.get(habit_id)
        if habit is None:
            return
        self._deliver(streak_notification(habit.id, habit.name, streak_count))

    def send_daily_summary(self, stats: OverallStats) -> None:
        self._deliver(daily_summary_notification(stats))

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------
    def load_reminders(self) -> int:
        """Schedule reminders for every habit that has a reminder time."""
        count = 0
        for habit in self.ctx.registry.list_all():
            if habit.reminder_time and self.schedule_reminder(
                habit.id, habit.reminder_time, habit.reminder_message or ""
            ):
                count += 1
        return count

    def check_milestones(self) -> list[StreakMilestoneReached]:
        """Announce streak milestones, each at most once per habit per day."""
        today = self.today()
        self._announced = {key for key in self._announced if key[2] == today}
        delivered = []
        for event in self.ctx.stats.streak_milestones(as_of=today):
            key = (event.habit_id, event.count, today)
            if key in self._announced:
                continue
            self._announced.add(key)
            self.send_streak_notification(event.habit_id, event.count)
            delivered.append(event)
        return delivered

    def send_daily_summary_now(self) -> None:
        self.send_daily_summary(self.ctx.stats.overall_stats(as_of=self.today()))

    def _deliver_reminder(self, habit_id: str, message: str) -> None:
        habit = self.ctx.registry.get(habit_id)
        if habit is None:
            self.clear_reminder(habit_id)
            return
        self._deliver(reminder_notification(habit.id, habit.name, message))

    def _deliver(self, notification: Notification) -> bool:
        if not self.ctx.settings_repo.get("notificationsEnabled", False):
            logger.debug("Notifications disabled; dropped %s", notification.tag)
            return False
        self.sink(notification)
        return True

    def _is_backup_enabled(self) -> bool:
        """Config switch or the ``autoBackupEnabled`` user setting."""
        if self.ctx.config.AUTO_BACKUP:
            return True
        return bool(self.ctx.settings_repo.get("autoBackupEnabled", False))

    def _run_backup(self) -> None:
        try:
            logger.info("Starting scheduled backup")
            path = create_backup(
                self.ctx.session_factory,
                self.ctx.config.backup_dir,
                day=self.today(),
                retention=self.ctx.config.EXPORT_RETENTION,
            )
            logger.info("Scheduled backup completed: %s", path)
        except (OSError, HabitLogError) as exc:
            logger.error("Scheduled backup failed: %s", exc, exc_info=True)

    def _cleanup_logs(self) -> None:
        """Delete rotated log files older than ``LOG_MAX_AGE_DAYS``."""
        logs_dir = self.ctx.config.logs_dir
        if not logs_dir.exists():
            return

        cutoff = datetime.now().timestamp() - (LOG_MAX_AGE_DAYS * 24 * 60 * 60)
        for log_file in logs_dir.glob("*.log.*"):
            try:
                if log_file.stat().st_mtime < cutoff:
                    log_file.unlink()
                    logger.info("Deleted old log file: %s", log_file.name)
            except OSError as exc:
                logger.error("Log cleanup failed for %s: %s", log_file.name, exc)
