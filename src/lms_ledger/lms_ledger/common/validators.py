from __future__ import annotations

from datetime import date
from typing import Any, Optional

from ..core.exceptions import ValidationError
from .datetime_utils import coerce_date


def require_positive_int(value: Any, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if number <= 0:
        raise ValidationError(f"{field_name} must be positive")
    return number


def require_date(value: Any, field_name: str) -> date:
    if value is None or value == "":
        raise ValidationError(f"{field_name} is required")
    try:
        return coerce_date(value)
    except ValueError:
        raise ValidationError(f"{field_name} must be a YYYY-MM-DD date")


def optional_text(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None
