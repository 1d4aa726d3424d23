"""Habit registry: validated CRUD over habit definitions."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from ..domain.repositories import HabitRepository
from ..domain.validation import (
    MUTABLE_FIELDS,
    parse_reminder_time,
    validate_habit_data,
    validate_habit_update,
)
from ..errors import HabitValidationError
from ..models.habit import Frequency, Habit, utcnow
from .completion_log import CompletionLog
from .notifications import Notifier

logger = logging.getLogger(__name__)


def _normalise_tags(tags: Optional[Iterable[str]]) -> list[str]:
    return sorted({tag.strip() for tag in tags or ()})


def _normalise(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Coerce validated input into the shapes stored on ``Habit``."""

    clean = dict(fields)
    if "name" in clean:
        clean["name"] = clean["name"].strip()
    if "frequency" in clean:
        clean["frequency"] = Frequency(clean["frequency"])
    if "description" in clean:
        clean["description"] = clean["description"] or ""
    if "tags" in clean:
        clean["tags"] = _normalise_tags(clean["tags"])
    if "reminder_time" in clean:
        clean["reminder_time"] = parse_reminder_time(clean["reminder_time"])
    if "reminder_message" in clean:
        clean["reminder_message"] = clean["reminder_message"] or None
    return clean


def habit_fields(habit: Habit) -> dict[str, Any]:
    """Caller-editable fields of a stored habit."""

    return {name: getattr(habit, name) for name in MUTABLE_FIELDS}


class HabitRegistry:
    """CRUD over habits; every write is validated before storage is touched.

    Deleting a habit cascades to its completion history and reminder.
    """

    def __init__(
        self,
        repository: HabitRepository,
        completion_log: CompletionLog,
        *,
        notifier: Optional[Notifier] = None,
    ):
        self.repository = repository
        self.completion_log = completion_log
        self.notifier = notifier

    def get(self, habit_id: str) -> Optional[Habit]:
        return self.repository.get_by_id(habit_id)

    def list_all(self) -> list[Habit]:
        return self.repository.list_all()

    def add(self, **fields: Any) -> Optional[Habit]:
        """Create a habit from keyword fields.

        Raises:
            HabitValidationError: listing every rule the input breaks.

        Returns ``None`` only when storage rejected the write.
        """
        payload = {"frequency": Frequency.DAILY.value, **fields}
        result = validate_habit_data(payload)
        if not result.is_valid:
            raise HabitValidationError(result.errors)

        created = self.repository.create(Habit(**_normalise(payload)))
        if created is None:
            logger.warning("Habit could not be stored", extra={"habit_name": payload.get("name")})
            return None

        logger.info("Habit created", extra={"habit_id": created.id})
        self._sync_reminder(created)
        return created

    def update(self, habit_id: str, **changes: Any) -> Optional[Habit]:
        """Apply ``changes`` to a habit; ``None`` when the habit does not exist.

        ``id`` and ``created_at`` cannot be changed. ``updated_at`` is refreshed.
        """
        habit = self.repository.get_by_id(habit_id)
        if habit is None:
            return None

        merged = {**habit_fields(habit), **changes}
        if isinstance(merged.get("frequency"), Frequency):
            merged["frequency"] = merged["frequency"].value
        result = validate_habit_update(changes, merged)
        if not result.is_valid:
            raise HabitValidationError(result.errors)

        for name, value in _normalise(changes).items():
            setattr(habit, name, value)
        habit.updated_at = utcnow()

        updated = self.repository.update(habit)
        if updated is None:
            return None
        logger.info("Habit updated", extra={"habit_id": habit_id, "fields": sorted(changes)})
        if {"reminder_time", "reminder_message"} & set(changes):
            self._sync_reminder(updated)
        return updated

    def delete(self, habit_id: str) -> bool:
        """Delete a habit and everything hanging off it; ``False`` if unknown."""
        if self.repository.get_by_id(habit_id) is None:
            return False

        self.completion_log.delete_all(habit_id)
        if self.notifier is not None:
            self.notifier.clear_reminder(habit_id)
        deleted = self.repository.delete(habit_id)
        if deleted:
            logger.info("Habit deleted", extra={"habit_id": habit_id})
        return deleted

    def _sync_reminder(self, habit: Habit) -> None:
        if self.notifier is None:
            return
        if habit.reminder_time:
            self.notifier.schedule_reminder(
                habit.id, habit.reminder_time, habit.reminder_message or ""
            )
        else:
            self.notifier.clear_reminder(habit.id)


__all__ = ["HabitRegistry", "habit_fields"]
