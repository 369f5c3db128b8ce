from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Sequence

from ..common.datetime_utils import whole_days_since
from ..core.constants import OVERDUE_GRACE_DAYS
from ..core.enums import PAID_INSTALLMENT_STATUSES, FeeStatus, InstallmentStatus


@dataclass(frozen=True)
class Installment:
    """One scheduled partial payment of a Fee, ordered by `seq` (1-based)."""

    installment_id: int
    fee_id: int
    seq: int
    amount: int
    due_date: date
    status: InstallmentStatus
    receipt_ref: Optional[str] = None
    slip_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    verified_by: Optional[int] = None
    verified_at: Optional[datetime] = None

    @property
    def is_verified(self) -> bool:
        return self.status == InstallmentStatus.VERIFIED

    @property
    def is_paid_or_submitted(self) -> bool:
        return self.status in PAID_INSTALLMENT_STATUSES

    def days_past_due(self, now: datetime) -> int:
        return whole_days_since(self.due_date, now)

    def is_overdue_at(self, now: datetime) -> bool:
        """Unverified and more than OVERDUE_GRACE_DAYS past its due date."""
        return not self.is_verified and self.days_past_due(now) > OVERDUE_GRACE_DAYS


@dataclass(frozen=True)
class Fee:
    fee_id: int
    student_id: int
    course_id: int
    total_fee: int
    paid_amount: int
    status: FeeStatus
    roll_no_assigned: bool
    installments: tuple[Installment, ...] = ()
    created_at: Optional[datetime] = None

    @property
    def first_installment(self) -> Optional[Installment]:
        return self.installments[0] if self.installments else None

    @property
    def last_installment(self) -> Optional[Installment]:
        return self.installments[-1] if self.installments else None

    def find_installment(self, installment_id: int) -> Optional[Installment]:
        for inst in self.installments:
            if inst.installment_id == int(installment_id):
                return inst
        return None

    def installment_at(self, seq: int) -> Optional[Installment]:
        for inst in self.installments:
            if inst.seq == int(seq):
                return inst
        return None


@dataclass(frozen=True)
class PlannedInstallment:
    """Entry of an installment plan submitted by an admin."""

    amount: int
    due_date: date
    status: InstallmentStatus = InstallmentStatus.PENDING


@dataclass(frozen=True)
class NewInstallment:
    """Row to insert into a fee's schedule."""

    seq: int
    amount: int
    due_date: date
    status: InstallmentStatus = InstallmentStatus.PENDING
    verified_by: Optional[int] = None
    verified_at: Optional[datetime] = None


@dataclass(frozen=True)
class FeeTotals:
    paid_amount: int
    status: FeeStatus


def compute_fee_totals(total_fee: int, installments: Sequence[Installment]) -> FeeTotals:
    """paid = sum of verified amounts; status pending / partial / verified against the total."""

    paid = sum(int(i.amount) for i in installments if i.is_verified)
    if paid == 0:
        status = FeeStatus.PENDING
    elif paid < int(total_fee):
        status = FeeStatus.PARTIAL
    else:
        status = FeeStatus.VERIFIED
    return FeeTotals(paid_amount=paid, status=status)
