from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional, Sequence

from ..certificates.repository import CertificateRepository
from ..common.datetime_utils import now_utc
from ..common.unit_of_work import NoTransaction, UnitOfWork
from ..core.constants import DEFAULT_INSTALLMENT_DUE_DAYS
from ..core.enums import EnrollmentStatus, Role
from ..core.exceptions import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from ..courses.model import parse_course_fee
from ..courses.repository import CourseRepository
from ..fees.model import Fee, NewInstallment, PlannedInstallment, compute_fee_totals
from ..fees.repository import FeeRepository
from ..students.repository import StudentRepository
from .model import Enrollment, EnrollmentView, compute_activation
from .repository import EnrollmentRepository

logger = logging.getLogger(__name__)

ACTIVATED = "activated"
REACTIVATED = "reactivated"
SUSPENDED = "suspended"
UPDATED = "updated"
UNCHANGED = "unchanged"
CONFLICT = "conflict"
NO_ENROLLMENT = "no_enrollment"
COMPLETED = "completed"


class EnrollmentService:
    """Enrollment lifecycle: pending -> enrolled -> completed, with enrolled <-> suspended.

    Activation is derived from the Fee ledger every time it is evaluated; the
    stored `is_active` flag is only a cache of that computation.
    """

    def __init__(
        self,
        enrollments: EnrollmentRepository,
        fees: FeeRepository,
        courses: CourseRepository,
        students: StudentRepository,
        certificates: CertificateRepository,
        *,
        unit_of_work: Optional[UnitOfWork] = None,
    ):
        self._enrollments = enrollments
        self._fees = fees
        self._courses = courses
        self._students = students
        self._certificates = certificates
        self._uow = unit_of_work or NoTransaction()

    def create_enrollment(
        self,
        *,
        student_id: int,
        course_id: int,
        current_role: Role,
        actor_id: int,
        schedule: Optional[Sequence[PlannedInstallment]] = None,
        now: Optional[datetime] = None,
    ) -> EnrollmentView:
        now = now or now_utc()
        if current_role == Role.TEACHER:
            raise AuthorizationError("Teachers cannot create enrollments")
        if current_role == Role.STUDENT and int(actor_id) != int(student_id):
            raise AuthorizationError("Students can only enroll themselves")
        if schedule and current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can set a custom installment plan")

        course = self._courses.get_by_id(int(course_id))
        if not course or not course.is_active:
            raise NotFoundError("Course not found")
        student = self._students.get_by_id(int(student_id))
        if not student:
            raise NotFoundError("Student not found")
        if self._enrollments.get_for_student_course(student_id=student.student_id, course_id=course.course_id):
            raise InvalidStateError("Already enrolled in this course")
        if course.is_full:
            raise InvalidStateError("Course is full")

        total_fee = parse_course_fee(course.fee)
        rows = self._initial_schedule(schedule, total_fee=total_fee, now=now)
        if total_fee <= 0:
            total_fee = sum(r.amount for r in rows)

        with self._uow.transaction():
            fee_id = self._fees.create(
                student_id=student.student_id,
                course_id=course.course_id,
                total_fee=total_fee,
                schedule=rows,
            )
            if not fee_id:
                raise InvalidStateError("A fee record already exists for this course")
            enrollment_id = self._enrollments.create(
                student_id=student.student_id,
                course_id=course.course_id,
                registration_date=student.created_at,
            )
            if not enrollment_id:
                raise InvalidStateError("Already enrolled in this course")

        logger.info(
            "Student %s enrolled in course %s (enrollment %s, fee %s, total %s)",
            student.student_id,
            course.course_id,
            enrollment_id,
            fee_id,
            total_fee,
        )
        return self.get_enrollment_view(enrollment_id)

    def _initial_schedule(
        self, schedule: Optional[Sequence[PlannedInstallment]], *, total_fee: int, now: datetime
    ) -> list[NewInstallment]:
        if schedule:
            rows = []
            for seq, planned in enumerate(schedule, start=1):
                if int(planned.amount) <= 0:
                    raise ValidationError(f"Installment #{seq} amount must be positive")
                rows.append(NewInstallment(seq=seq, amount=int(planned.amount), due_date=planned.due_date))
            return rows

        if total_fee <= 0:
            # Priced later through an installment plan.
            return []
        due = (now + timedelta(days=DEFAULT_INSTALLMENT_DUE_DAYS)).date()
        return [NewInstallment(seq=1, amount=total_fee, due_date=due)]

    def sync_with_fee(self, fee: Fee, *, now: Optional[datetime] = None) -> str:
        """Drive the enrollment of `fee` to the state its installments imply.

        Returns an outcome tag. Sets the enrollment date and bumps the
        course's enrolled count the first time the enrollment becomes
        enrolled; both are guarded by the null enrollment date.
        """

        now = now or now_utc()
        enrollment = self._enrollments.get_for_student_course(student_id=fee.student_id, course_id=fee.course_id)
        if not enrollment:
            logger.warning("Fee %s has no enrollment (student %s, course %s)", fee.fee_id, fee.student_id, fee.course_id)
            return NO_ENROLLMENT
        if enrollment.is_completed:
            return COMPLETED

        totals = compute_fee_totals(fee.total_fee, fee.installments)
        target = compute_activation(enrollment, fee.installments, totals.status, now)

        tag = UNCHANGED
        if (target.status, target.fee_status, target.is_active) != (
            enrollment.status,
            enrollment.fee_status,
            enrollment.is_active,
        ):
            updated = self._enrollments.update_activation(
                enrollment_id=enrollment.enrollment_id,
                expected_status=enrollment.status,
                status=target.status,
                fee_status=target.fee_status,
                is_active=target.is_active,
            )
            if not updated:
                logger.warning(
                    "Enrollment %s changed concurrently (expected %s), leaving it for the next sweep",
                    enrollment.enrollment_id,
                    enrollment.status.value,
                )
                return CONFLICT
            tag = _transition_tag(enrollment.status, target.status)
            logger.info(
                "Enrollment %s: %s -> %s (active=%s)",
                enrollment.enrollment_id,
                enrollment.status.value,
                target.status.value,
                target.is_active,
            )

        if target.status == EnrollmentStatus.ENROLLED and enrollment.enrollment_date is None:
            if self._enrollments.set_enrollment_date_once(enrollment_id=enrollment.enrollment_id, enrolled_at=now):
                self._courses.increment_enrolled_count(enrollment.course_id)
                logger.info("Course %s enrolled count incremented", enrollment.course_id)
        return tag

    def complete_enrollment(
        self,
        enrollment_id: int,
        *,
        current_role: Role,
        grade: Optional[str] = None,
        percentage: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> Enrollment:
        if current_role not in (Role.ADMIN, Role.TEACHER):
            raise AuthorizationError("Only staff can complete an enrollment")
        if percentage is not None:
            try:
                percentage = float(percentage)
            except (TypeError, ValueError):
                raise ValidationError("percentage must be a number")
            if not 0 <= percentage <= 100:
                raise ValidationError("percentage must be between 0 and 100")

        enrollment = self._enrollments.get_by_id(int(enrollment_id))
        if not enrollment:
            raise NotFoundError("Enrollment not found")
        if enrollment.is_completed:
            raise InvalidStateError("Enrollment is already completed")

        if not self._enrollments.complete(
            enrollment_id=enrollment.enrollment_id,
            completed_at=now or now_utc(),
            grade=(grade or "").strip() or None,
            percentage=percentage,
        ):
            raise InvalidStateError("Enrollment is already completed")
        logger.info("Enrollment %s completed", enrollment.enrollment_id)
        return self._enrollments.get_by_id(enrollment.enrollment_id)

    def on_certificate_issued(self, *, student_id: int, course_id: int, now: Optional[datetime] = None) -> bool:
        """Certificate workflow hook. Returns True if the enrollment was completed by this call."""

        enrollment = self._enrollments.get_for_student_course(student_id=int(student_id), course_id=int(course_id))
        if not enrollment or enrollment.is_completed:
            return False
        return self._enrollments.complete(enrollment_id=enrollment.enrollment_id, completed_at=now or now_utc())

    def complete_if_certified(self, enrollment: Enrollment, *, now: Optional[datetime] = None) -> bool:
        if not self._certificates.has_certificate(student_id=enrollment.student_id, course_id=enrollment.course_id):
            return False
        return self._enrollments.complete(enrollment_id=enrollment.enrollment_id, completed_at=now or now_utc())

    def get_enrollment_view(self, enrollment_id: int) -> EnrollmentView:
        enrollment = self._enrollments.get_by_id(int(enrollment_id))
        if not enrollment:
            raise NotFoundError("Enrollment not found")
        return self._view(enrollment)

    def list_for_student(self, student_id: int) -> list[EnrollmentView]:
        return [self._view(e) for e in self._enrollments.list_for_student(int(student_id))]

    def _view(self, enrollment: Enrollment) -> EnrollmentView:
        fee = self._fees.get_for_student_course(student_id=enrollment.student_id, course_id=enrollment.course_id)
        if not fee:
            return EnrollmentView(enrollment=enrollment, fee_id=None)
        return EnrollmentView(enrollment=enrollment, fee_id=fee.fee_id, installments=fee.installments)


def _transition_tag(before: EnrollmentStatus, after: EnrollmentStatus) -> str:
    if after == EnrollmentStatus.SUSPENDED and before != EnrollmentStatus.SUSPENDED:
        return SUSPENDED
    if after == EnrollmentStatus.ENROLLED and before == EnrollmentStatus.SUSPENDED:
        return REACTIVATED
    if after == EnrollmentStatus.ENROLLED and before == EnrollmentStatus.PENDING:
        return ACTIVATED
    return UPDATED

