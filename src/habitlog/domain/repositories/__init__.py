"""Repository protocol definitions for domain layer."""

from .completion import CompletionRepository
from .habit import HabitRepository
from .settings import SettingsRepository

__all__ = [
    "CompletionRepository",
    "HabitRepository",
    "SettingsRepository",
]
