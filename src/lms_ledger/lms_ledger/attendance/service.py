from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Iterable, Mapping, Optional, Union

from ..common.datetime_utils import now_utc, weekday_index
from ..common.unit_of_work import NoTransaction, UnitOfWork
from ..common.validators import require_date, require_positive_int
from ..core.constants import DEFAULT_ATTENDANCE_EDIT_CUTOFF_HOUR
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import AuthorizationError, InvalidStateError, ValidationError
from ..settings.service import HolidayService
from .model import (
    AttendanceDay,
    AttendanceDayView,
    AttendanceReport,
    HistoryEntry,
    MarkEntry,
    StudentAttendanceTotals,
)
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

_STAFF = (Role.ADMIN, Role.TEACHER)


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        holidays: HolidayService,
        *,
        unit_of_work: Optional[UnitOfWork] = None,
        edit_cutoff_hour: int = DEFAULT_ATTENDANCE_EDIT_CUTOFF_HOUR,
        tz: tzinfo = timezone.utc,
    ):
        self._attendance = attendance
        self._holidays = holidays
        self._uow = unit_of_work or NoTransaction()
        self._cutoff_hour = int(edit_cutoff_hour)
        self._tz = tz

    @staticmethod
    def _require_staff(current_role: Role) -> None:
        if current_role not in _STAFF:
            raise AuthorizationError("Only teachers and admins can manage attendance")

    def _local_now(self, now: Optional[datetime]) -> datetime:
        return (now or now_utc()).astimezone(self._tz)

    def can_edit(self, day: AttendanceDay, *, now: Optional[datetime] = None) -> bool:
        """Day-of edit window: today, before the cutoff hour, unlocked and not a holiday."""

        local = self._local_now(now)
        if day.day != local.date() or local.hour >= self._cutoff_hour:
            return False
        if day.is_locked or day.is_holiday:
            return False
        return weekday_index(day.day) not in self._holidays.get_holiday_days()

    def get_attendance_day(
        self,
        course_id: int,
        day: Union[str, date],
        *,
        current_role: Role,
        now: Optional[datetime] = None,
    ) -> AttendanceDayView:
        self._require_staff(current_role)
        course_id = require_positive_int(course_id, "course_id")
        target = require_date(day, "date")

        found = self._attendance.get_for_course_and_date(course_id, target)
        if not found:
            found = AttendanceDay(attendance_day_id=None, course_id=course_id, day=target)
        return AttendanceDayView(attendance=found, can_edit=self.can_edit(found, now=now))

    def mark_attendance(
        self,
        course_id: int,
        day: Union[str, date],
        records: Iterable[Union[MarkEntry, Mapping[str, Any]]],
        *,
        marked_by: int,
        current_role: Role,
        now: Optional[datetime] = None,
    ) -> AttendanceDay:
        self._require_staff(current_role)
        course_id = require_positive_int(course_id, "course_id")
        target = require_date(day, "date")
        entries = [self._to_entry(r) for r in records or []]
        if not entries:
            raise ValidationError("At least one attendance record is required")

        if weekday_index(target) in self._holidays.get_holiday_days():
            raise InvalidStateError(f"{target.isoformat()} is a holiday")

        with self._uow.transaction():
            sheet, _ = self._attendance.get_or_create(course_id, target)
            if sheet.is_holiday:
                raise InvalidStateError(f"{target.isoformat()} is a holiday")
            if sheet.is_locked:
                raise InvalidStateError("Attendance for this day is locked")
            if not self._attendance.save_records(
                attendance_day_id=sheet.attendance_day_id,
                entries=entries,
                marked_by=int(marked_by),
                marked_at=now or now_utc(),
            ):
                raise InvalidStateError("Attendance for this day is locked")

        logger.info("Course %s %s: %d mark(s) saved by %s", course_id, target, len(entries), marked_by)
        return self._attendance.get_for_course_and_date(course_id, target)

    @staticmethod
    def _to_entry(raw: Union[MarkEntry, Mapping[str, Any]]) -> MarkEntry:
        if isinstance(raw, MarkEntry):
            return raw
        if not isinstance(raw, Mapping):
            raise ValidationError("Each attendance record must be an object")
        student_id = require_positive_int(raw.get("studentId", raw.get("student_id")), "studentId")
        try:
            status = AttendanceStatus(str(raw.get("status") or "").strip().lower())
        except ValueError:
            raise ValidationError(f"Invalid attendance status for student {student_id}")
        return MarkEntry(student_id=student_id, status=status)

    def get_attendance_report(self, course_id: int, *, current_role: Role) -> AttendanceReport:
        self._require_staff(current_role)
        course_id = require_positive_int(course_id, "course_id")
        days = tuple(sorted(self._attendance.list_for_course(course_id), key=lambda d: d.day))

        present: Counter = Counter()
        absent: Counter = Counter()
        for d in days:
            for r in d.records:
                if r.status == AttendanceStatus.PRESENT:
                    present[r.student_id] += 1
                else:
                    absent[r.student_id] += 1

        students = tuple(
            StudentAttendanceTotals(student_id=sid, present=present[sid], absent=absent[sid])
            for sid in sorted(set(present) | set(absent))
        )
        return AttendanceReport(course_id=course_id, days=days, students=students)

    def get_student_history(self, course_id: int, student_id: int) -> list[HistoryEntry]:
        out = []
        for d in self._attendance.list_for_course(int(course_id)):
            record = d.record_for(student_id)
            if record:
                out.append(HistoryEntry(day=d.day, status=record.status))
        return sorted(out, key=lambda h: h.day)
