"""SQLModel table exports."""

from .habit import Frequency, Habit, HabitCompletion
from .settings import AppSetting

__all__ = [
    "AppSetting",
    "Frequency",
    "Habit",
    "HabitCompletion",
]
