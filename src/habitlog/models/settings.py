"""Application-level settings stored in the database."""

from __future__ import annotations

from typing import ClassVar

from sqlmodel import Field, SQLModel


class AppSetting(SQLModel, table=True):
    """Key-value storage; ``value`` holds the JSON encoding of the setting."""

    __tablename__: ClassVar[str] = "app_setting"

    key: str = Field(primary_key=True, max_length=64)
    value: str = Field(nullable=False, default="null")
