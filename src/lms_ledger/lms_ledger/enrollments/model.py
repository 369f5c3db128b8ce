from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import EnrollmentFeeStatus, EnrollmentStatus, FeeStatus
from ..fees.model import Installment


@dataclass(frozen=True)
class Enrollment:
    enrollment_id: int
    student_id: int
    course_id: int
    status: EnrollmentStatus
    fee_status: EnrollmentFeeStatus
    is_active: bool
    registration_date: Optional[datetime] = None
    enrollment_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    grade: Optional[str] = None
    percentage: Optional[float] = None

    @property
    def is_completed(self) -> bool:
        return self.status == EnrollmentStatus.COMPLETED


@dataclass(frozen=True)
class EnrollmentView:
    """Enrollment together with the installments of its Fee (the only installment ledger)."""

    enrollment: Enrollment
    fee_id: Optional[int]
    installments: tuple[Installment, ...] = ()


@dataclass(frozen=True)
class Activation:
    status: EnrollmentStatus
    fee_status: EnrollmentFeeStatus
    is_active: bool


def is_first_installment_verified(installments: Sequence[Installment]) -> bool:
    return bool(installments) and installments[0].is_verified


def has_overdue_installment(installments: Sequence[Installment], now: datetime) -> bool:
    return any(i.is_overdue_at(now) for i in installments)


def compute_is_active(installments: Sequence[Installment], now: datetime) -> bool:
    """First installment verified and no unverified installment more than the grace period past due."""

    return is_first_installment_verified(installments) and not has_overdue_installment(installments, now)


def compute_activation(
    current: Enrollment,
    installments: Sequence[Installment],
    fee_status: FeeStatus,
    now: datetime,
) -> Activation:
    """Target state of an enrollment given its ledger.

    pending stays pending until the first installment is verified; after that
    the enrollment moves between enrolled and suspended with payment
    timeliness. completed is terminal.
    """

    if current.is_completed:
        return Activation(EnrollmentStatus.COMPLETED, current.fee_status, False)

    active = compute_is_active(installments, now)
    if not is_first_installment_verified(installments):
        return Activation(current.status, EnrollmentFeeStatus(fee_status.value), False)
    if active:
        return Activation(EnrollmentStatus.ENROLLED, EnrollmentFeeStatus(fee_status.value), True)
    return Activation(EnrollmentStatus.SUSPENDED, EnrollmentFeeStatus.OVERDUE, False)
