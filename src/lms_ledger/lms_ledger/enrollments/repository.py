from __future__ import annotations

from datetime import datetime
from typing import Collection, Optional, Protocol, Sequence

from ..core.enums import EnrollmentFeeStatus, EnrollmentStatus
from .model import Enrollment


class EnrollmentRepository(Protocol):
    def get_by_id(self, enrollment_id: int) -> Optional[Enrollment]:
        raise NotImplementedError

    def get_for_student_course(self, *, student_id: int, course_id: int) -> Optional[Enrollment]:
        raise NotImplementedError

    def list_for_student(self, student_id: int) -> Sequence[Enrollment]:
        raise NotImplementedError

    def list_for_course(self, course_id: int, *, statuses: Collection[EnrollmentStatus]) -> Sequence[Enrollment]:
        raise NotImplementedError

    def list_open(self) -> Sequence[Enrollment]:
        """Every enrollment that is not completed."""

        raise NotImplementedError

    def create(self, *, student_id: int, course_id: int, registration_date: Optional[datetime]) -> int:
        """Returns 0 if the (student, course) enrollment already exists."""

        raise NotImplementedError

    def update_activation(
        self,
        *,
        enrollment_id: int,
        expected_status: EnrollmentStatus,
        status: EnrollmentStatus,
        fee_status: EnrollmentFeeStatus,
        is_active: bool,
    ) -> bool:
        """Conditional on the status the caller read."""

        raise NotImplementedError

    def set_enrollment_date_once(self, *, enrollment_id: int, enrolled_at: datetime) -> bool:
        """Set enrollment_date only while it is NULL."""

        raise NotImplementedError

    def complete(
        self,
        *,
        enrollment_id: int,
        completed_at: datetime,
        grade: Optional[str] = None,
        percentage: Optional[float] = None,
    ) -> bool:
        raise NotImplementedError
