from __future__ import annotations

from datetime import date, datetime
from typing import Collection, Optional, Protocol, Sequence

from ..core.enums import FeeStatus, InstallmentStatus
from .model import Fee, NewInstallment


class FeeRepository(Protocol):
    """Ledger store: one Fee per (student, course) with its ordered installments.

    Every installment mutation is a conditional update matched on the fee id,
    the installment id and the statuses it may move from; methods return
    False when nothing matched.
    """

    def get_by_id(self, fee_id: int) -> Optional[Fee]:
        raise NotImplementedError

    def get_for_student_course(self, *, student_id: int, course_id: int) -> Optional[Fee]:
        raise NotImplementedError

    def list_for_student(self, student_id: int) -> Sequence[Fee]:
        raise NotImplementedError

    def list_all(self) -> Sequence[Fee]:
        raise NotImplementedError

    def list_awaiting_verification(self) -> Sequence[Fee]:
        """Fees with at least one installment carrying an unreviewed receipt."""

        raise NotImplementedError

    def create(self, *, student_id: int, course_id: int, total_fee: int, schedule: Sequence[NewInstallment]) -> int:
        """Insert the fee and its schedule. Returns 0 if the (student, course) fee already exists."""

        raise NotImplementedError

    def submit_installment(
        self,
        *,
        fee_id: int,
        installment_id: int,
        receipt_ref: Optional[str],
        slip_id: Optional[str],
        paid_at: datetime,
        allowed_from: Collection[InstallmentStatus],
    ) -> bool:
        raise NotImplementedError

    def verify_installment(self, *, fee_id: int, installment_id: int, verifier_id: int, verified_at: datetime) -> bool:
        raise NotImplementedError

    def reject_installment(
        self, *, fee_id: int, installment_id: int, allowed_from: Collection[InstallmentStatus]
    ) -> bool:
        """Set rejected and clear receipt_ref, slip_id and paid_at."""

        raise NotImplementedError

    def mark_overdue(self, *, fee_id: int, installment_id: int) -> bool:
        raise NotImplementedError

    def append_installment(self, *, fee_id: int, seq: int, amount: int, due_date: date) -> bool:
        """Insert at `seq`; False if that position is already taken."""

        raise NotImplementedError

    def replace_unpaid(self, *, fee_id: int, rows: Sequence[NewInstallment]) -> None:
        """Drop every installment not submitted/verified and insert `rows`."""

        raise NotImplementedError

    def delete_installment(self, *, fee_id: int, installment_id: int) -> bool:
        """Delete an unpaid installment and close the gap in `seq`."""

        raise NotImplementedError

    def update_totals(self, *, fee_id: int, paid_amount: int, status: FeeStatus) -> None:
        raise NotImplementedError

    def price_unpriced(self, *, fee_id: int, total_fee: int) -> bool:
        """Set `total_fee` on a fee still priced at 0; False if it already had a price."""

        raise NotImplementedError

    def mark_roll_no_assigned(self, fee_id: int) -> bool:
        raise NotImplementedError
