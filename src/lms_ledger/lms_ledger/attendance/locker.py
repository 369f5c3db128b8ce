"""Nightly attendance auto-lock.

Finalizes yesterday's sheet of every active course: on a holiday weekday the
sheet is flagged and locked empty; otherwise every enrolled student without a
mark gets an auto-marked absence and the sheet is locked. Locked sheets are
left alone, so re-running for the same day is a no-op.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone, tzinfo
from typing import Optional

from ..common.datetime_utils import now_utc, previous_day, weekday_index
from ..common.sweep import SweepResult, run_sweep
from ..common.unit_of_work import NoTransaction, UnitOfWork
from ..core.enums import EnrollmentStatus
from ..courses.model import Course
from ..courses.repository import CourseRepository
from ..enrollments.repository import EnrollmentRepository
from ..integrations.events import ATTENDANCE_LOCKED, EventPublisher, emit
from ..settings.service import HolidayService
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

JOB_NAME = "attendance_lock"

LOCKED = "locked"
HOLIDAY = "holiday"
ALREADY_LOCKED = "already_locked"
CREATED = "created"
AUTO_ABSENT = "auto_absent"

ROSTER_STATUSES = (EnrollmentStatus.ENROLLED,)


class AttendanceLocker:
    def __init__(
        self,
        attendance: AttendanceRepository,
        courses: CourseRepository,
        enrollments: EnrollmentRepository,
        holidays: HolidayService,
        *,
        unit_of_work: Optional[UnitOfWork] = None,
        events: Optional[EventPublisher] = None,
        tz: tzinfo = timezone.utc,
    ):
        self._attendance = attendance
        self._courses = courses
        self._enrollments = enrollments
        self._holidays = holidays
        self._uow = unit_of_work or NoTransaction()
        self._events = events
        self._tz = tz

    def target_date(self, now: datetime) -> date:
        """Yesterday on the scheduler's wall clock."""
        return previous_day(now.astimezone(self._tz))

    def lock_previous_day(self, *, now: Optional[datetime] = None) -> SweepResult:
        now = now or now_utc()
        target = self.target_date(now)
        is_holiday = weekday_index(target) in self._holidays.get_holiday_days()
        logger.info("%s: locking %s (holiday=%s)", JOB_NAME, target.isoformat(), is_holiday)

        result = run_sweep(
            JOB_NAME,
            self._courses.list_active(),
            lambda course: self.lock_course(course, target, is_holiday=is_holiday, now=now),
            describe=lambda course: f"course {course.course_id}",
        )
        emit(
            self._events,
            ATTENDANCE_LOCKED,
            {"date": target.isoformat(), "holiday": is_holiday, **result.to_dict()},
        )
        return result

    def lock_course(self, course: Course, target: date, *, is_holiday: bool, now: datetime) -> tuple[str, ...]:
        with self._uow.transaction():
            sheet, is_new = self._attendance.get_or_create(course.course_id, target)
            backfilled = (CREATED,) if is_new else ()

            if is_holiday:
                if not self._attendance.mark_holiday(attendance_day_id=sheet.attendance_day_id, locked_at=now):
                    return backfilled + (ALREADY_LOCKED,)
                return backfilled + (HOLIDAY,)

            if sheet.is_locked:
                return (ALREADY_LOCKED,)

            roster = self._enrollments.list_for_course(course.course_id, statuses=ROSTER_STATUSES)
            marked = {r.student_id for r in sheet.records}
            missing = [e.student_id for e in roster if e.student_id not in marked]
            absences = 0
            if missing:
                absences = self._attendance.add_auto_absences(
                    attendance_day_id=sheet.attendance_day_id,
                    student_ids=missing,
                    marked_at=now,
                )
            if not self._attendance.lock(attendance_day_id=sheet.attendance_day_id, locked_at=now):
                return backfilled + (ALREADY_LOCKED,)

        logger.info("Course %s %s locked, %d absence(s) auto-marked", course.course_id, target, absences)
        return backfilled + (LOCKED,) + (AUTO_ABSENT,) * absences
