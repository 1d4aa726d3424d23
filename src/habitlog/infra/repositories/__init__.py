"""Concrete repository implementations using SQLModel."""

from .completion import SQLModelCompletionRepository
from .habit import SQLModelHabitRepository
from .settings import DEFAULT_SETTINGS, SQLModelSettingsRepository

__all__ = [
    "DEFAULT_SETTINGS",
    "SQLModelCompletionRepository",
    "SQLModelHabitRepository",
    "SQLModelSettingsRepository",
]
