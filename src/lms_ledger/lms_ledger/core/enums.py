from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Caller roles supplied by the external identity layer."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    VERIFIED = "verified"
    REJECTED = "rejected"
    OVERDUE = "overdue"


class FeeStatus(str, Enum):
    """Derived from the verified amount against the total fee."""

    PENDING = "pending"
    PARTIAL = "partial"
    VERIFIED = "verified"


class EnrollmentStatus(str, Enum):
    PENDING = "pending"
    ENROLLED = "enrolled"
    COMPLETED = "completed"
    SUSPENDED = "suspended"


class EnrollmentFeeStatus(str, Enum):
    """Mirror of FeeStatus on the enrollment, plus the overdue flag."""

    PENDING = "pending"
    PARTIAL = "partial"
    VERIFIED = "verified"
    OVERDUE = "overdue"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"


PAID_INSTALLMENT_STATUSES = frozenset({InstallmentStatus.SUBMITTED, InstallmentStatus.VERIFIED})
