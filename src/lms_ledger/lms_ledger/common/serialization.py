from __future__ import annotations

import dataclasses
from datetime import date, datetime
from enum import Enum
from typing import Any

from .datetime_utils import as_utc, utc_midnight


def as_json(value: Any) -> Any:
    """Convert domain objects into JSON-ready structures.

    Calendar dates are rendered as UTC midnight so clients never see a
    timezone-shifted day.
    """

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: as_json(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return as_utc(value).isoformat().replace("+00:00", "Z")
    if isinstance(value, date):
        return utc_midnight(value).isoformat().replace("+00:00", "Z")
    if isinstance(value, dict):
        return {str(k): as_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [as_json(v) for v in value]
        return sorted(items) if isinstance(value, (set, frozenset)) else items
    return value
