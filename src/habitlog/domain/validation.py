"""Validation rules for habit input."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from ..models.habit import Frequency

NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
REMINDER_MESSAGE_MAX_LENGTH = 255

# Fields a caller may set; id and timestamps are owned by the registry
MUTABLE_FIELDS = frozenset(
    {"name", "description", "frequency", "tags", "reminder_time", "reminder_message"}
)
IMMUTABLE_FIELDS = frozenset({"id", "created_at", "updated_at"})


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating habit input; ``errors`` lists every violated rule."""

    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def parse_reminder_time(raw: str | None) -> str | None:
    """Return a normalised HH:MM string, ``None`` for blank input.

    Raises:
        ValueError: if the value is not a valid 24h time.
    """
    if raw is None or not str(raw).strip():
        return None
    return datetime.strptime(str(raw).strip(), "%H:%M").strftime("%H:%M")


def validate_habit_data(data: Mapping[str, Any]) -> ValidationResult:
    """Check a full habit payload and collect every broken rule."""

    errors: list[str] = []

    for field_name in sorted(IMMUTABLE_FIELDS & set(data)):
        errors.append(f"Field '{field_name}' is assigned automatically")
    unknown = sorted(set(data) - MUTABLE_FIELDS - IMMUTABLE_FIELDS)
    if unknown:
        errors.append(f"Unknown habit field(s): {', '.join(unknown)}")

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append("Habit name is required")
    elif len(name.strip()) > NAME_MAX_LENGTH:
        errors.append(f"Habit name is too long (max {NAME_MAX_LENGTH} characters)")

    frequency = data.get("frequency")
    if isinstance(frequency, Frequency):
        pass
    elif not isinstance(frequency, str) or frequency not in {f.value for f in Frequency}:
        errors.append("Valid frequency is required (daily or weekly)")

    description = data.get("description")
    if description is not None:
        if not isinstance(description, str):
            errors.append("Description must be text")
        elif len(description) > DESCRIPTION_MAX_LENGTH:
            errors.append(f"Description is too long (max {DESCRIPTION_MAX_LENGTH} characters)")

    tags = data.get("tags")
    if tags is not None:
        if not isinstance(tags, (list, tuple, set, frozenset)) or not all(
            isinstance(t, str) and t.strip() for t in tags
        ):
            errors.append("Tags must be a collection of non-empty strings")

    try:
        parse_reminder_time(data.get("reminder_time"))
    except (TypeError, ValueError):
        errors.append("Reminder time must use HH:MM (24 hour) format")

    message = data.get("reminder_message")
    if message is not None and (
        not isinstance(message, str) or len(message) > REMINDER_MESSAGE_MAX_LENGTH
    ):
        errors.append(
            f"Reminder message must be text of at most {REMINDER_MESSAGE_MAX_LENGTH} characters"
        )

    return ValidationResult(errors=errors)


def validate_habit_update(changes: Mapping[str, Any], merged: Mapping[str, Any]) -> ValidationResult:
    """Validate an update: immutable fields are rejected, then the merged habit is checked."""

    errors = [
        f"Field '{name}' cannot be changed"
        for name in sorted(IMMUTABLE_FIELDS & set(changes))
    ]
    editable = {key: value for key, value in merged.items() if key not in IMMUTABLE_FIELDS}
    errors.extend(validate_habit_data(editable).errors)
    return ValidationResult(errors=errors)
