from __future__ import annotations

from typing import Optional, Protocol

from .model import Student


class StudentRepository(Protocol):
    def get_by_id(self, student_id: int, *, for_update: bool = False) -> Optional[Student]:
        """`for_update` locks the row until the surrounding transaction ends."""

        raise NotImplementedError

    def assign_roll_no(self, *, student_id: int, roll_no: str) -> bool:
        """Set roll_no only if the student has none yet."""

        raise NotImplementedError


class CounterRepository(Protocol):
    def next_value(self, name: str) -> int:
        """Atomically increment the named counter (created at 0) and return the new value."""

        raise NotImplementedError
