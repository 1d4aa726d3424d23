"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

from .config import BaseConfig
from .infra.database import create_db_engine, create_session_factory, init_database
from .infra.repositories import (
    SQLModelCompletionRepository,
    SQLModelHabitRepository,
    SQLModelSettingsRepository,
)
from .scheduler import HabitScheduler
from .services import transfer
from .services.completion_log import CompletionLog
from .services.habit_registry import HabitRegistry
from .services.notifications import NotificationSink, log_sink
from .services.stats import StatsEngine


@dataclass
class AppContext:
    """Everything a presentation layer needs, built once at startup."""

    config: BaseConfig
    session_factory: Callable[[], Any]
    today: Callable[[], date]

    habit_repo: SQLModelHabitRepository
    completion_repo: SQLModelCompletionRepository
    settings_repo: SQLModelSettingsRepository

    completion_log: CompletionLog
    registry: HabitRegistry
    stats: StatsEngine

    scheduler: Optional[HabitScheduler] = None
    engine: Any = None

    def shutdown(self) -> None:
        """Stop scheduled work and release database connections."""

        if self.scheduler is not None:
            self.scheduler.stop()
        if self.engine is not None:
            self.engine.dispose()

    def app_stats(self) -> dict[str, Any]:
        """Storage counts, overall habit figures and notification status."""

        reminders = self.settings_repo.get("reminderTimes", {}) or {}
        return {
            "storage": asdict(transfer.storage_stats(self.session_factory)),
            "habits": asdict(self.stats.overall_stats()),
            "notifications": {
                "enabled": bool(self.settings_repo.get("notificationsEnabled", False)),
                "reminders": len(reminders),
                "scheduler_running": self.scheduler is not None and self.scheduler.running,
            },
            "app_version": self.config.APP_VERSION,
            "last_updated": datetime.now(timezone.utc).isoformat(),
        }


def build_context(
    config: BaseConfig,
    session_factory: Callable[[], Any],
    *,
    today: Callable[[], date] = date.today,
    sink: NotificationSink = log_sink,
    engine: Any = None,
) -> AppContext:
    """Wire repositories and services around an existing session factory."""

    habit_repo = SQLModelHabitRepository(session_factory)
    completion_repo = SQLModelCompletionRepository(session_factory)
    settings_repo = SQLModelSettingsRepository(session_factory)

    completion_log = CompletionLog(completion_repo, today=today)
    registry = HabitRegistry(habit_repo, completion_log)
    stats = StatsEngine(
        registry,
        completion_log,
        lookback_days=config.STREAK_LOOKBACK_DAYS,
        milestones=config.STREAK_MILESTONES,
        today=today,
    )

    ctx = AppContext(
        config=config,
        session_factory=session_factory,
        today=today,
        habit_repo=habit_repo,
        completion_repo=completion_repo,
        settings_repo=settings_repo,
        completion_log=completion_log,
        registry=registry,
        stats=stats,
        engine=engine,
    )

    # The scheduler is the registry's notifier; it is only started on demand.
    ctx.scheduler = HabitScheduler(ctx, sink=sink, today=today)
    registry.notifier = ctx.scheduler
    return ctx


def create_app_context(
    config: Optional[BaseConfig] = None,
    *,
    today: Callable[[], date] = date.today,
    sink: NotificationSink = log_sink,
) -> AppContext:
    """Create the database, schema and every service for one running app."""

    if config is None:
        config = BaseConfig()

    engine = create_db_engine(config)
    init_database(engine)
    session_factory = create_session_factory(engine)

    return build_context(config, session_factory, today=today, sink=sink, engine=engine)
