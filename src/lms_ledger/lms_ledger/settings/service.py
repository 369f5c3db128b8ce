from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, Optional, Union

from ..common.datetime_utils import coerce_date, weekday_index
from ..core.constants import HOLIDAY_SETTING_KEY
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ValidationError
from .repository import SettingsRepository

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


class HolidayService:
    """Global weekly holiday calendar (weekday indices, 0 = Sunday)."""

    def __init__(self, settings: SettingsRepository, *, key: str = HOLIDAY_SETTING_KEY):
        self._settings = settings
        self._key = key

    def get_holiday_days(self) -> frozenset[int]:
        setting = self._settings.get(self._key)
        if not setting or not setting.value:
            return frozenset()
        days = set()
        for raw in setting.value:
            try:
                day = int(raw)
            except (TypeError, ValueError):
                logger.warning("Ignoring malformed holiday weekday %r", raw)
                continue
            if 0 <= day <= 6:
                days.add(day)
        return frozenset(days)

    def set_holiday_days(self, days: Iterable, *, current_role: Role, updated_by: Optional[int] = None) -> frozenset[int]:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can change holiday days")

        normalized = set()
        for raw in days or []:
            try:
                day = int(raw)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid weekday: {raw!r}")
            if not 0 <= day <= 6:
                raise ValidationError("Weekdays must be between 0 (Sunday) and 6 (Saturday)")
            normalized.add(day)

        self._settings.put(
            self._key,
            sorted(normalized),
            updated_by=updated_by,
            description="Weekly holiday weekdays (0 = Sunday)",
        )
        logger.info("Holiday weekdays set to %s", [WEEKDAY_NAMES[d] for d in sorted(normalized)])
        return frozenset(normalized)

    def is_holiday(self, day: Union[str, date, datetime]) -> bool:
        return weekday_index(coerce_date(day)) in self.get_holiday_days()
