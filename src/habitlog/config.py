"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def _env_int_list(name: str, default: tuple[int, ...]) -> tuple[int, ...]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return tuple(sorted({int(part) for part in value.split(",") if part.strip()}))
    except ValueError as exc:
        raise ValueError(f"{name} must be a comma separated list of integers") from exc


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "HabitLog"
    APP_VERSION = "0.1.0"
    DB_FILENAME = "habitlog.db"
    EXPORT_RETENTION = 5
    SQLITE_PRAGMAS = {"foreign_keys": "on"}

    def __init__(self) -> None:
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("HABITLOG_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("HABITLOG_DATABASE_URL", self._build_sqlite_url())
        self.STREAK_LOOKBACK_DAYS = _env_int("HABITLOG_STREAK_LOOKBACK_DAYS", 365)
        self.STREAK_MILESTONES = _env_int_list("HABITLOG_MILESTONES", (7, 30, 100))
        self.DAILY_SUMMARY_TIME = os.getenv("HABITLOG_DAILY_SUMMARY_TIME", "21:00")
        self.MILESTONE_CHECK_MINUTES = _env_int("HABITLOG_MILESTONE_CHECK_MINUTES", 60)
        self.AUTO_BACKUP = _env_bool("HABITLOG_AUTO_BACKUP", default=False)
        if self.STREAK_LOOKBACK_DAYS < 1:
            raise ValueError("HABITLOG_STREAK_LOOKBACK_DAYS must be at least 1.")

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file, logs and backups live."""

        data_root = os.getenv("HABITLOG_DATA_DIR", "instance")
        base_path = Path(data_root).expanduser()
        try:
            path = base_path.resolve()
            path.mkdir(parents=True, exist_ok=True)
            return path
        except PermissionError:
            # Protected install locations fall back to user-local storage.
            fallback_path = Path.home() / f".{self.APP_NAME.lower()}"
            fallback_path.mkdir(parents=True, exist_ok=True)
            return fallback_path.resolve()

    def _build_sqlite_url(self) -> str:
        """Construct the default SQLite URL inside the data directory."""

        return f"sqlite:///{self.DATA_DIR / self.DB_FILENAME}"

    @property
    def backup_dir(self) -> Path:
        return self.DATA_DIR / "backups"

    @property
    def logs_dir(self) -> Path:
        return self.DATA_DIR / "logs"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        connect_args: dict[str, Any] = {}
        if self.DATABASE_URL.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        return {"connect_args": connect_args}
