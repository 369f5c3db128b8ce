from __future__ import annotations

from typing import Any, Optional, Protocol

from .model import SystemSetting


class SettingsRepository(Protocol):
    def get(self, key: str) -> Optional[SystemSetting]:
        raise NotImplementedError

    def put(self, key: str, value: Any, *, updated_by: Optional[int] = None, description: Optional[str] = None) -> None:
        raise NotImplementedError
