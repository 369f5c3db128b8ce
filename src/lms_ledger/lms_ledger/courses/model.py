from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Course:
    """Read-model of the course catalog: only what billing and attendance need."""

    course_id: int
    title: str
    fee: Optional[str]
    is_active: bool
    enrolled_count: int = 0
    max_students: Optional[int] = None

    @property
    def is_full(self) -> bool:
        return self.max_students is not None and self.enrolled_count >= self.max_students


def parse_course_fee(value: Optional[object]) -> int:
    """Digits of the catalog fee ("5,000 PKR" -> 5000); 0 when there are none ("Coming Soon")."""

    if value is None:
        return 0
    digits = re.sub(r"[^0-9]", "", str(value))
    return int(digits) if digits else 0
