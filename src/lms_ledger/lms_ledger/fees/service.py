from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence

from ..common.datetime_utils import now_utc
from ..common.unit_of_work import NoTransaction, UnitOfWork
from ..common.validators import optional_text, require_positive_int
from ..core.constants import DEFAULT_INSTALLMENT_DUE_DAYS
from ..core.enums import InstallmentStatus, Role
from ..core.exceptions import (
    AuthorizationError,
    InvalidStateError,
    InvariantViolationError,
    NotFoundError,
    ValidationError,
)
from ..enrollments.service import EnrollmentService
from ..integrations.events import PAYMENT_SUBMITTED, EventPublisher, emit
from ..integrations.receipts import NullReceiptStore, ReceiptStore, discard_receipt
from ..students.roll_numbers import RollNumberIssuer
from .model import Fee, Installment, NewInstallment, PlannedInstallment, compute_fee_totals
from .repository import FeeRepository

logger = logging.getLogger(__name__)

SUBMITTABLE = frozenset({InstallmentStatus.PENDING, InstallmentStatus.REJECTED, InstallmentStatus.OVERDUE})
REJECTABLE = frozenset({InstallmentStatus.SUBMITTED, InstallmentStatus.PENDING, InstallmentStatus.OVERDUE})
PLANNABLE_STATUSES = frozenset({InstallmentStatus.PENDING, InstallmentStatus.VERIFIED})


@dataclass(frozen=True)
class PendingPayment:
    fee: Fee
    installment: Installment


class FeeLedgerService:
    """Installment ledger: payment submission, review and plan changes.

    Installment mutations go through conditional repository updates scoped to
    (fee, installment, allowed statuses), so a sweep running at the same time
    can never overwrite a payment. Verification side effects (totals, roll
    number, enrollment activation) run in one transaction with the update.
    """

    def __init__(
        self,
        fees: FeeRepository,
        enrollments: EnrollmentService,
        roll_numbers: RollNumberIssuer,
        *,
        unit_of_work: Optional[UnitOfWork] = None,
        receipts: Optional[ReceiptStore] = None,
        events: Optional[EventPublisher] = None,
    ):
        self._fees = fees
        self._enrollments = enrollments
        self._roll_numbers = roll_numbers
        self._uow = unit_of_work or NoTransaction()
        self._receipts = receipts or NullReceiptStore()
        self._events = events

    # ---- reads -------------------------------------------------------------

    def _require_fee(self, fee_id: int) -> Fee:
        fee = self._fees.get_by_id(int(fee_id))
        if not fee:
            raise NotFoundError("Fee record not found")
        return fee

    @staticmethod
    def _require_installment(fee: Fee, installment_id: int) -> Installment:
        inst = fee.find_installment(int(installment_id))
        if not inst:
            raise NotFoundError("Installment not found")
        return inst

    def get_fee(self, fee_id: int, *, current_role: Role, actor_id: int) -> Fee:
        fee = self._require_fee(fee_id)
        if current_role == Role.STUDENT and fee.student_id != int(actor_id):
            raise AuthorizationError("Not authorized to view this fee")
        return fee

    def list_fees_for_student(self, student_id: int, *, now: Optional[datetime] = None) -> list[Fee]:
        """Fees of one student; a fee left without installments gets a default one."""

        now = now or now_utc()
        out = []
        for fee in self._fees.list_for_student(int(student_id)):
            if not fee.installments and fee.total_fee > 0:
                due = (now + timedelta(days=DEFAULT_INSTALLMENT_DUE_DAYS)).date()
                self._fees.replace_unpaid(
                    fee_id=fee.fee_id,
                    rows=[NewInstallment(seq=1, amount=fee.total_fee, due_date=due)],
                )
                logger.info("Fee %s had no installments, created a default one due %s", fee.fee_id, due)
                fee = self._require_fee(fee.fee_id)
            out.append(fee)
        return out

    def list_all(self, *, current_role: Role) -> Sequence[Fee]:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can list all fees")
        return self._fees.list_all()

    def list_pending_verification(self, *, current_role: Role) -> list[PendingPayment]:
        """Submitted installments, plus overdue ones whose receipt is still waiting for review."""

        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can review payments")
        out = []
        for fee in self._fees.list_awaiting_verification():
            for inst in fee.installments:
                if inst.status == InstallmentStatus.SUBMITTED or (
                    inst.status == InstallmentStatus.OVERDUE and (inst.receipt_ref or inst.slip_id)
                ):
                    out.append(PendingPayment(fee=fee, installment=inst))
        return out

    # ---- transitions -------------------------------------------------------

    def submit_payment(
        self,
        fee_id: int,
        installment_id: int,
        *,
        receipt_ref: Optional[str],
        slip_id: Optional[str],
        current_role: Role,
        actor_id: int,
        now: Optional[datetime] = None,
    ) -> Installment:
        now = now or now_utc()
        receipt_ref = optional_text(receipt_ref)
        slip_id = optional_text(slip_id)
        if not receipt_ref and not slip_id:
            raise ValidationError("A receipt or a slip id is required")

        fee = self._require_fee(fee_id)
        if current_role == Role.STUDENT and fee.student_id != int(actor_id):
            raise AuthorizationError("Not authorized to pay this fee")
        inst = self._require_installment(fee, installment_id)
        if inst.status not in SUBMITTABLE:
            raise InvalidStateError(f"Installment #{inst.seq} is already {inst.status.value}")

        if not self._fees.submit_installment(
            fee_id=fee.fee_id,
            installment_id=inst.installment_id,
            receipt_ref=receipt_ref,
            slip_id=slip_id,
            paid_at=now,
            allowed_from=SUBMITTABLE,
        ):
            raise InvalidStateError(f"Installment #{inst.seq} changed while submitting, reload and retry")

        logger.info("Payment submitted for fee %s installment #%s (slip %s)", fee.fee_id, inst.seq, slip_id)
        emit(
            self._events,
            PAYMENT_SUBMITTED,
            {
                "fee_id": fee.fee_id,
                "installment_id": inst.installment_id,
                "student_id": fee.student_id,
                "course_id": fee.course_id,
                "amount": inst.amount,
                "slip_id": slip_id,
            },
        )
        return self._require_installment(self._require_fee(fee.fee_id), inst.installment_id)

    def verify_installment(
        self,
        fee_id: int,
        installment_id: int,
        *,
        verifier_id: int,
        current_role: Role,
        now: Optional[datetime] = None,
    ) -> Fee:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can verify payments")
        now = now or now_utc()

        with self._uow.transaction():
            fee = self._require_fee(fee_id)
            inst = self._require_installment(fee, installment_id)
            if inst.is_verified:
                raise InvalidStateError(f"Installment #{inst.seq} is already verified")
            if not self._fees.verify_installment(
                fee_id=fee.fee_id,
                installment_id=inst.installment_id,
                verifier_id=int(verifier_id),
                verified_at=now,
            ):
                raise InvalidStateError(f"Installment #{inst.seq} is already verified")
            fee = self.apply_ledger_effects(fee.fee_id, now=now)

        logger.info("Installment #%s of fee %s verified by %s", inst.seq, fee.fee_id, verifier_id)
        discard_receipt(self._receipts, inst.receipt_ref)
        return fee

    def reject_installment(
        self,
        fee_id: int,
        installment_id: int,
        *,
        current_role: Role,
    ) -> Installment:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can reject payments")

        fee = self._require_fee(fee_id)
        inst = self._require_installment(fee, installment_id)
        if inst.status not in REJECTABLE:
            raise InvalidStateError(f"Installment #{inst.seq} is {inst.status.value} and cannot be rejected")
        if not self._fees.reject_installment(
            fee_id=fee.fee_id,
            installment_id=inst.installment_id,
            allowed_from=REJECTABLE,
        ):
            raise InvalidStateError(f"Installment #{inst.seq} changed while rejecting, reload and retry")

        logger.info("Installment #%s of fee %s rejected", inst.seq, fee.fee_id)
        discard_receipt(self._receipts, inst.receipt_ref)
        return self._require_installment(self._require_fee(fee.fee_id), inst.installment_id)

    def set_installment_plan(
        self,
        fee_id: int,
        schedule: Sequence[PlannedInstallment],
        *,
        current_role: Role,
        actor_id: int,
        now: Optional[datetime] = None,
    ) -> Fee:
        """Replace every unpaid installment with `schedule`.

        Submitted and verified installments keep their position and content;
        the plan entry at such a position is ignored. An entry with status
        verified records a cash payment, verified by the acting admin.
        A fee created without a price (total 0) takes the plan total as its price.
        """

        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can change installment plans")
        if not schedule:
            raise ValidationError("At least one installment is required")
        now = now or now_utc()

        for seq, planned in enumerate(schedule, start=1):
            require_positive_int(planned.amount, f"Installment #{seq} amount")
            if planned.status not in PLANNABLE_STATUSES:
                raise ValidationError(f"Installment #{seq} status must be pending or verified")

        with self._uow.transaction():
            fee = self._require_fee(fee_id)
            paid = [i for i in fee.installments if i.is_paid_or_submitted]
            if len(schedule) < len(paid):
                raise InvariantViolationError(
                    "Cannot remove installments that are already paid/submitted. "
                    f"You have {len(paid)} active payments."
                )
            beyond = [i for i in paid if i.seq > len(schedule)]
            if beyond:
                raise InvariantViolationError(
                    f"Installment #{beyond[0].seq} is already {beyond[0].status.value} and cannot be removed"
                )

            rows = []
            records_cash = False
            for seq, planned in enumerate(schedule, start=1):
                existing = fee.installment_at(seq)
                if existing and existing.is_paid_or_submitted:
                    continue
                cash = planned.status == InstallmentStatus.VERIFIED
                records_cash = records_cash or cash
                rows.append(
                    NewInstallment(
                        seq=seq,
                        amount=int(planned.amount),
                        due_date=planned.due_date,
                        status=InstallmentStatus.VERIFIED if cash else InstallmentStatus.PENDING,
                        verified_by=int(actor_id) if cash else None,
                        verified_at=now if cash else None,
                    )
                )

            self._fees.replace_unpaid(fee_id=fee.fee_id, rows=rows)
            if fee.total_fee <= 0:
                total_fee = sum(i.amount for i in paid) + sum(r.amount for r in rows)
                if self._fees.price_unpriced(fee_id=fee.fee_id, total_fee=total_fee):
                    logger.info("Fee %s priced at %d by its installment plan", fee.fee_id, total_fee)
            fee = self.apply_ledger_effects(fee.fee_id, now=now)

        logger.info(
            "Fee %s plan set to %d installment(s)%s",
            fee.fee_id,
            len(schedule),
            " including cash payments" if records_cash else "",
        )
        return fee

    def delete_installment(self, fee_id: int, installment_id: int, *, current_role: Role) -> Fee:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can delete installments")

        with self._uow.transaction():
            fee = self._require_fee(fee_id)
            inst = self._require_installment(fee, installment_id)
            if inst.is_paid_or_submitted:
                raise InvariantViolationError(f"Installment #{inst.seq} is {inst.status.value} and cannot be deleted")
            if not self._fees.delete_installment(fee_id=fee.fee_id, installment_id=inst.installment_id):
                raise InvalidStateError(f"Installment #{inst.seq} changed while deleting, reload and retry")
            fee = self.apply_ledger_effects(fee.fee_id)

        logger.info("Installment #%s removed from fee %s", inst.seq, fee.fee_id)
        return fee

    # ---- shared effects ----------------------------------------------------

    def apply_ledger_effects(self, fee_id: int, *, now: Optional[datetime] = None) -> Fee:
        """Recompute totals, issue the roll number once and sync the enrollment.

        Runs inside the caller's transaction. Returns the refreshed Fee.
        """

        now = now or now_utc()
        fee = self._require_fee(fee_id)

        totals = compute_fee_totals(fee.total_fee, fee.installments)
        if (totals.paid_amount, totals.status) != (fee.paid_amount, fee.status):
            self._fees.update_totals(fee_id=fee.fee_id, paid_amount=totals.paid_amount, status=totals.status)
            fee = dataclasses.replace(fee, paid_amount=totals.paid_amount, status=totals.status)

        if not fee.roll_no_assigned and any(i.is_verified for i in fee.installments):
            self._roll_numbers.issue_if_missing(fee.student_id)
            self._fees.mark_roll_no_assigned(fee.fee_id)
            fee = dataclasses.replace(fee, roll_no_assigned=True)

        self._enrollments.sync_with_fee(fee, now=now)
        return fee
