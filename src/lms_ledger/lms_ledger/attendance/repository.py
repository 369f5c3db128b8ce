from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Protocol, Sequence, Tuple

from .model import AttendanceDay, MarkEntry


class AttendanceRepository(Protocol):
    def get_for_course_and_date(self, course_id: int, day: date) -> Optional[AttendanceDay]:
        raise NotImplementedError

    def get_or_create(self, course_id: int, day: date) -> Tuple[AttendanceDay, bool]:
        """Find-or-create; safe against a concurrent create of the same (course, day).

        The flag is True only for the caller whose insert created the row.
        """

        raise NotImplementedError

    def list_for_course(self, course_id: int) -> Sequence[AttendanceDay]:
        """Days of a course ordered by date, with their records."""

        raise NotImplementedError

    def save_records(
        self,
        *,
        attendance_day_id: int,
        entries: Sequence[MarkEntry],
        marked_by: int,
        marked_at: datetime,
    ) -> bool:
        """Upsert human marks (auto_marked cleared). False if the day is locked."""

        raise NotImplementedError

    def add_auto_absences(self, *, attendance_day_id: int, student_ids: Iterable[int], marked_at: datetime) -> int:
        """Insert an auto-marked absence for each student without a record. Returns rows created."""

        raise NotImplementedError

    def lock(self, *, attendance_day_id: int, locked_at: datetime) -> bool:
        """False if the day was already locked."""

        raise NotImplementedError

    def mark_holiday(self, *, attendance_day_id: int, locked_at: datetime) -> bool:
        """Flag as holiday and lock. False if it already was both."""

        raise NotImplementedError
