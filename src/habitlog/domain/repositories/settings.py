"""Settings repository protocol."""

from __future__ import annotations

from typing import Any, Protocol


class SettingsRepository(Protocol):
    """Key/value settings storage with JSON values."""

    def get_all(self) -> dict[str, Any]:
        ...

    def save_all(self, settings: dict[str, Any]) -> bool:
        ...

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any) -> bool:
        ...
