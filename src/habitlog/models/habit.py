"""Habit tracking data structures."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import ClassVar, Optional

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel


def new_habit_id() -> str:
    """Return a fresh opaque habit identifier."""

    return uuid.uuid4().hex


def utcnow() -> datetime:
    """Naive UTC timestamp; the columns are declared as plain ``DateTime``."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


class Frequency(str, Enum):
    """How often a habit is meant to be performed."""

    DAILY = "daily"
    WEEKLY = "weekly"


class Habit(SQLModel, table=True):
    """A user-defined habit tracked independently of the others."""

    __tablename__: ClassVar[str] = "habit"

    id: str = Field(default_factory=new_habit_id, primary_key=True, max_length=32)
    name: str = Field(nullable=False, max_length=100, index=True)
    description: str = Field(default="", max_length=500)
    frequency: Frequency = Field(default=Frequency.DAILY, nullable=False)
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    reminder_time: Optional[str] = Field(default=None, max_length=5)
    reminder_message: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=False), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=False), nullable=False)
    )

    @property
    def created_on(self) -> date:
        """Calendar day the habit was created."""

        return self.created_at.date()


class HabitCompletion(SQLModel, table=True):
    """The fact that a habit was done on a calendar day.

    Absence of a row is the incomplete state; there are no "false" rows.
    """

    __tablename__: ClassVar[str] = "habit_completion"

    habit_id: str = Field(foreign_key="habit.id", primary_key=True, max_length=32)
    completed_on: date = Field(primary_key=True, index=True)
    timestamp: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=False), nullable=False)
    )
