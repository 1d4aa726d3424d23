"""JSON export/import of the whole habit store, plus rolling backups.

Document layout::

    {
      "habits": [{"id", "name", "description", "frequency", "tags",
                  "reminderTime", "reminderMessage", "createdAt", "updatedAt"}],
      "completions": {"<habitId>": [{"date": "YYYY-MM-DD", "timestamp": "<iso>"}]},
      "settings": {...},
      "exportDate": "<iso>"
    }

Imports are all-or-nothing: the document is checked in full before the store
is touched, and the replacement runs in one transaction.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..domain.validation import parse_reminder_time, validate_habit_data
from ..errors import ImportFormatError, StorageError
from ..infra.repositories.settings import DEFAULT_SETTINGS
from ..models import AppSetting, Frequency, Habit, HabitCompletion
from ..models.habit import utcnow
from .completion_log import window_start

if TYPE_CHECKING:
    from .stats import HabitStats, StatsEngine

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractContextManager[Session]]

REQUIRED_KEYS = ("habits", "completions", "settings")
EXPORT_RETENTION = 5
BACKUP_GLOB = "habitlog-backup-*.json"


@dataclass(frozen=True)
class ImportSummary:
    """Counts of what an import wrote."""

    habits: int
    completions: int
    settings: int


def _iso(value: datetime) -> str:
    return value.isoformat()


def _parse_timestamp(raw: Any) -> datetime:
    """Parse an ISO timestamp into naive UTC."""

    if not isinstance(raw, str):
        raise ValueError(f"expected ISO timestamp, got {raw!r}")
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _parse_day(raw: Any) -> date:
    if not isinstance(raw, str):
        raise ValueError(f"expected YYYY-MM-DD date, got {raw!r}")
    return date.fromisoformat(raw)


def habit_to_document(habit: Habit) -> dict[str, Any]:
    frequency = habit.frequency
    return {
        "id": habit.id,
        "name": habit.name,
        "description": habit.description,
        "frequency": frequency.value if isinstance(frequency, Frequency) else frequency,
        "tags": list(habit.tags or []),
        "reminderTime": habit.reminder_time,
        "reminderMessage": habit.reminder_message,
        "createdAt": _iso(habit.created_at),
        "updatedAt": _iso(habit.updated_at),
    }


def export_data(
    session_factory: SessionFactory, *, exported_at: Optional[datetime] = None
) -> dict[str, Any]:
    """Snapshot habits, completions and settings into an export document."""

    with session_factory() as session:
        habits = session.exec(select(Habit).order_by(Habit.created_at, Habit.id)).all()  # type: ignore
        records = session.exec(
            select(HabitCompletion).order_by(
                HabitCompletion.habit_id, HabitCompletion.completed_on  # type: ignore
            )
        ).all()
        settings = copy.deepcopy(DEFAULT_SETTINGS)
        for row in session.exec(select(AppSetting)).all():
            settings[row.key] = json.loads(row.value)

    completions: dict[str, list[dict[str, str]]] = {habit.id: [] for habit in habits}
    for record in records:
        completions.setdefault(record.habit_id, []).append(
            {"date": record.completed_on.isoformat(), "timestamp": _iso(record.timestamp)}
        )

    return {
        "habits": [habit_to_document(habit) for habit in habits],
        "completions": completions,
        "settings": settings,
        "exportDate": _iso(exported_at or datetime.now(timezone.utc)),
    }


@dataclass(frozen=True)
class StorageStats:
    """Row counts and the size of the store as an export document."""

    total_habits: int
    total_completions: int
    storage_size: int


def storage_stats(session_factory: SessionFactory) -> StorageStats:
    """Count habits and completions; ``storage_size`` is the export JSON length."""

    document = export_data(session_factory)
    del document["exportDate"]
    return StorageStats(
        total_habits=len(document["habits"]),
        total_completions=sum(len(entries) for entries in document["completions"].values()),
        storage_size=len(json.dumps(document)),
    )


def habit_stats_to_document(stats: HabitStats) -> dict[str, Any]:
    return {
        "currentStreak": stats.current_streak,
        "longestStreak": stats.longest_streak,
        "completionRate7": stats.completion_rate_7,
        "completionRate30": stats.completion_rate_30,
        "totalCompletions": stats.total_completions,
        "completedToday": stats.completed_today,
    }


def habit_document(
    stats_engine: StatsEngine,
    habit_id: str,
    *,
    as_of: Optional[date] = None,
    exported_at: Optional[datetime] = None,
) -> Optional[dict[str, Any]]:
    """One habit with its completions inside the lookback window and its stats.

    Returns ``None`` for an unknown habit.
    """
    habit = stats_engine.registry.get(habit_id)
    if habit is None:
        return None

    day = as_of or stats_engine.today()
    first_day = window_start(day, stats_engine.lookback_days)
    records = [
        record
        for record in stats_engine.completion_log.records(habit_id)
        if first_day <= record.completed_on <= day
    ]
    return {
        "habit": habit_to_document(habit),
        "completions": [
            {"date": record.completed_on.isoformat(), "timestamp": _iso(record.timestamp)}
            for record in records
        ],
        "stats": habit_stats_to_document(stats_engine.habit_stats(habit_id, as_of=day)),
        "exportDate": _iso(exported_at or datetime.now(timezone.utc)),
    }


def _habit_from_document(index: int, raw: Any, errors: list[str]) -> Optional[Habit]:
    where = f"habits[{index}]"
    if not isinstance(raw, Mapping):
        errors.append(f"{where}: expected an object")
        return None

    habit_id = raw.get("id")
    if not isinstance(habit_id, str) or not habit_id.strip():
        errors.append(f"{where}: id is required")

    fields = {
        "name": raw.get("name"),
        "description": raw.get("description") or "",
        "frequency": raw.get("frequency"),
        "tags": raw.get("tags") or [],
        "reminder_time": raw.get("reminderTime"),
        "reminder_message": raw.get("reminderMessage"),
    }
    result = validate_habit_data(fields)
    errors.extend(f"{where}: {message}" for message in result.errors)

    try:
        created_at = _parse_timestamp(raw.get("createdAt"))
        updated_at = _parse_timestamp(raw.get("updatedAt", raw.get("createdAt")))
    except ValueError as exc:
        errors.append(f"{where}: {exc}")
        return None

    if not result.is_valid or not isinstance(habit_id, str) or not habit_id.strip():
        return None

    return Habit(
        id=habit_id,
        name=fields["name"].strip(),
        description=fields["description"],
        frequency=Frequency(fields["frequency"]),
        tags=sorted({tag.strip() for tag in fields["tags"]}),
        reminder_time=parse_reminder_time(fields["reminder_time"]),
        reminder_message=fields["reminder_message"] or None,
        created_at=created_at,
        updated_at=updated_at,
    )


def _completions_from_document(
    raw: Mapping[str, Any], habit_ids: set[str], errors: list[str]
) -> list[HabitCompletion]:
    records: dict[tuple[str, date], HabitCompletion] = {}
    for habit_id, entries in raw.items():
        where = f"completions[{habit_id!r}]"
        if habit_id not in habit_ids:
            errors.append(f"{where}: unknown habit id")
            continue
        if not isinstance(entries, list):
            errors.append(f"{where}: expected a list")
            continue
        for position, entry in enumerate(entries):
            if not isinstance(entry, Mapping):
                errors.append(f"{where}[{position}]: expected an object")
                continue
            try:
                day = _parse_day(entry.get("date"))
                stamp = entry.get("timestamp")
                timestamp = _parse_timestamp(stamp) if stamp is not None else utcnow()
            except ValueError as exc:
                errors.append(f"{where}[{position}]: {exc}")
                continue
            # duplicates collapse to the first record for the day
            records.setdefault(
                (habit_id, day),
                HabitCompletion(habit_id=habit_id, completed_on=day, timestamp=timestamp),
            )
    return list(records.values())


def parse_import_document(document: Any) -> tuple[list[Habit], list[HabitCompletion], dict]:
    """Validate an import document in full and build the rows it describes.

    Raises:
        ImportFormatError: listing every problem found; nothing is written.
    """
    if not isinstance(document, Mapping):
        raise ImportFormatError(["Import document must be a JSON object"])

    missing = [key for key in REQUIRED_KEYS if key not in document]
    if missing:
        raise ImportFormatError([f"Missing top-level key: {key}" for key in missing])

    errors: list[str] = []
    if not isinstance(document["habits"], list):
        errors.append("habits: expected a list")
    if not isinstance(document["completions"], Mapping):
        errors.append("completions: expected an object keyed by habit id")
    if not isinstance(document["settings"], Mapping):
        errors.append("settings: expected an object")
    if errors:
        raise ImportFormatError(errors)

    habits: list[Habit] = []
    seen: set[str] = set()
    for index, raw in enumerate(document["habits"]):
        habit = _habit_from_document(index, raw, errors)
        if habit is None:
            continue
        if habit.id in seen:
            errors.append(f"habits[{index}]: duplicate id {habit.id!r}")
            continue
        seen.add(habit.id)
        habits.append(habit)

    completions = _completions_from_document(document["completions"], seen, errors)
    if errors:
        raise ImportFormatError(errors)

    return habits, completions, dict(document["settings"])


def import_data(session_factory: SessionFactory, document: Any) -> ImportSummary:
    """Replace the whole store with the contents of ``document``.

    Raises:
        ImportFormatError: the document was rejected; the store is untouched.
        StorageError: the write failed and was rolled back.
    """
    habits, completions, settings = parse_import_document(document)

    try:
        with session_factory() as session:
            try:
                session.execute(delete(HabitCompletion))
                session.execute(delete(Habit))
                session.execute(delete(AppSetting))
                session.flush()
                session.add_all(habits)
                session.flush()
                session.add_all(completions)
                session.add_all(
                    AppSetting(key=key, value=json.dumps(value)) for key, value in settings.items()
                )
                session.commit()
            except SQLAlchemyError:
                session.rollback()
                raise
    except SQLAlchemyError as exc:
        logger.error("Import failed; store left unchanged", exc_info=True)
        raise StorageError("Import could not be written") from exc

    summary = ImportSummary(habits=len(habits), completions=len(completions), settings=len(settings))
    logger.info("Import applied", extra={"summary": summary})
    return summary


def clear_all(session_factory: SessionFactory) -> ImportSummary:
    """Drop every habit, completion and setting, leaving the default settings."""

    return import_data(
        session_factory,
        {"habits": [], "completions": {}, "settings": copy.deepcopy(DEFAULT_SETTINGS)},
    )


def write_export(session_factory: SessionFactory, output_path: Path) -> Path:
    """Write an export document to ``output_path`` as indented JSON."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    document = export_data(session_factory)
    output_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
    logger.info("Export written", extra={"path": str(output_path)})
    return output_path


def read_import_file(path: Path) -> dict[str, Any]:
    """Load an export document from disk."""

    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ImportFormatError([f"{path.name} is not valid JSON: {exc.msg}"]) from exc
    except UnicodeDecodeError as exc:
        raise ImportFormatError([f"{path.name} is not UTF-8 encoded text"]) from exc


def backup_filename(day: date) -> str:
    return f"habitlog-backup-{day.isoformat()}.json"


def _ensure_secure_directory(directory: Path) -> None:
    """Create the directory and set restrictive permissions when possible."""

    directory.mkdir(parents=True, exist_ok=True)
    try:
        os.chmod(directory, 0o700)
    except (NotImplementedError, PermissionError):  # pragma: no cover - platform specific
        logger.debug("Could not restrict permissions on %s", directory)


def prune_backups(directory: Path, keep: int = EXPORT_RETENTION) -> list[Path]:
    """Remove backups beyond the retention count, newest kept; returns removed paths."""

    backups = sorted(directory.glob(BACKUP_GLOB), key=lambda file: file.name, reverse=True)
    removed = []
    for old in backups[keep:]:
        try:
            old.unlink()
            removed.append(old)
        except OSError:
            logger.warning("Could not remove old backup %s", old, exc_info=True)
    return removed


def create_backup(
    session_factory: SessionFactory,
    backup_dir: Path,
    *,
    day: Optional[date] = None,
    retention: int = EXPORT_RETENTION,
) -> Path:
    """Write today's backup (replacing an earlier one from the same day) and prune."""

    _ensure_secure_directory(backup_dir)
    path = write_export(session_factory, backup_dir / backup_filename(day or date.today()))
    prune_backups(backup_dir, keep=retention)
    return path


__all__ = [
    "EXPORT_RETENTION",
    "ImportSummary",
    "StorageStats",
    "backup_filename",
    "clear_all",
    "create_backup",
    "export_data",
    "habit_document",
    "habit_stats_to_document",
    "habit_to_document",
    "import_data",
    "parse_import_document",
    "prune_backups",
    "read_import_file",
    "storage_stats",
    "write_export",
]
