from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Student:
    """Read-model of the identity layer's student account."""

    student_id: int
    full_name: str
    roll_no: Optional[str]
    created_at: Optional[datetime] = None
    email: Optional[str] = None
