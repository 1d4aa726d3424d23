"""Settings repository for app-level key/value pairs."""

from __future__ import annotations

import copy
import json
from typing import Any, Callable

from sqlalchemy import delete
from sqlmodel import Session, select

from ...models.settings import AppSetting
from ..database import storage_guard

DEFAULT_SETTINGS: dict[str, Any] = {
    "notificationsEnabled": False,
    "reminderTimes": {},
}


def _defaults() -> dict[str, Any]:
    return copy.deepcopy(DEFAULT_SETTINGS)


class SQLModelSettingsRepository:
    """SQLModel-based settings repository; values are stored JSON encoded."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    @storage_guard(_defaults)
    def get_all(self) -> dict[str, Any]:
        """Return stored settings layered over the defaults."""
        with self.session_factory() as session:
            settings = _defaults()
            for row in session.exec(select(AppSetting)).all():
                settings[row.key] = json.loads(row.value)
            return settings

    @storage_guard(lambda: False)
    def save_all(self, settings: dict[str, Any]) -> bool:
        """Replace every stored setting with ``settings``."""
        with self.session_factory() as session:
            session.execute(delete(AppSetting))
            for key, value in settings.items():
                session.add(AppSetting(key=key, value=json.dumps(value)))
            session.commit()
            return True

    def get(self, key: str, default: Any = None) -> Any:
        return self.get_all().get(key, default)

    @storage_guard(lambda: False)
    def set(self, key: str, value: Any) -> bool:
        with self.session_factory() as session:
            setting = session.get(AppSetting, key)
            if setting:
                setting.value = json.dumps(value)
            else:
                setting = AppSetting(key=key, value=json.dumps(value))
            session.add(setting)
            session.commit()
            return True


__all__ = ["DEFAULT_SETTINGS", "SQLModelSettingsRepository"]
