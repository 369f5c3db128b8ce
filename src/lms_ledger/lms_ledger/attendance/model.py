from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    student_id: int
    status: AttendanceStatus
    marked_at: datetime
    marked_by: Optional[int] = None
    auto_marked: bool = False


@dataclass(frozen=True)
class AttendanceDay:
    """Attendance sheet of one course for one calendar day (stored as a UTC-midnight DATE)."""

    attendance_day_id: Optional[int]
    course_id: int
    day: date
    is_holiday: bool = False
    is_locked: bool = False
    locked_at: Optional[datetime] = None
    records: tuple[AttendanceRecord, ...] = ()

    def record_for(self, student_id: int) -> Optional[AttendanceRecord]:
        for r in self.records:
            if r.student_id == int(student_id):
                return r
        return None


@dataclass(frozen=True)
class MarkEntry:
    student_id: int
    status: AttendanceStatus


@dataclass(frozen=True)
class AttendanceDayView:
    attendance: AttendanceDay
    can_edit: bool


@dataclass(frozen=True)
class StudentAttendanceTotals:
    student_id: int
    present: int = 0
    absent: int = 0

    @property
    def total(self) -> int:
        return self.present + self.absent


@dataclass(frozen=True)
class AttendanceReport:
    course_id: int
    days: tuple[AttendanceDay, ...]
    students: tuple[StudentAttendanceTotals, ...]


@dataclass(frozen=True)
class HistoryEntry:
    day: date
    status: AttendanceStatus
