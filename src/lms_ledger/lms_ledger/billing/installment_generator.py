"""Monthly installment generation.

Eligibility is read from the ledger itself: a fee whose first installment is
verified, with no certificate and a last due date at least
INSTALLMENT_CYCLE_DAYS old, gets one new installment due
NEW_INSTALLMENT_DUE_DAYS from now. The new due date resets the window, so a
second run on the same day finds nothing to do; the unique (fee, seq) key
makes two concurrent runs append at most one row.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from ..certificates.repository import CertificateRepository
from ..common.datetime_utils import now_utc, whole_days_since
from ..common.sweep import SweepResult, run_sweep
from ..core.constants import INSTALLMENT_CYCLE_DAYS, NEW_INSTALLMENT_DUE_DAYS
from ..courses.model import parse_course_fee
from ..courses.repository import CourseRepository
from ..enrollments.repository import EnrollmentRepository
from ..fees.model import Fee
from ..fees.repository import FeeRepository

logger = logging.getLogger(__name__)

JOB_NAME = "installment_generation"

GENERATED = "generated"
NOT_DUE = "not_due"
NOT_ACTIVATED = "not_activated"
CERTIFIED = "certified"
COMPLETED = "completed"
NO_PRICE = "no_price"
RACED = "raced"


class InstallmentGenerator:
    def __init__(
        self,
        fees: FeeRepository,
        courses: CourseRepository,
        certificates: CertificateRepository,
        enrollments: EnrollmentRepository,
        *,
        cycle_days: int = INSTALLMENT_CYCLE_DAYS,
        due_in_days: int = NEW_INSTALLMENT_DUE_DAYS,
    ):
        self._fees = fees
        self._courses = courses
        self._certificates = certificates
        self._enrollments = enrollments
        self._cycle_days = int(cycle_days)
        self._due_in_days = int(due_in_days)

    def run(self, *, now: Optional[datetime] = None) -> SweepResult:
        now = now or now_utc()
        return run_sweep(
            JOB_NAME,
            self._fees.list_all(),
            lambda fee: self.process_fee(fee, now=now),
            describe=lambda fee: f"fee {fee.fee_id}",
        )

    def price_for(self, fee: Fee) -> int:
        course = self._courses.get_by_id(fee.course_id)
        amount = parse_course_fee(course.fee if course else None)
        if amount > 0:
            return amount
        first = fee.first_installment
        return int(first.amount) if first else 0

    def process_fee(self, fee: Fee, *, now: datetime) -> tuple[str, ...]:
        first, last = fee.first_installment, fee.last_installment
        if not first or not first.is_verified:
            return (NOT_ACTIVATED,)
        if whole_days_since(last.due_date, now) < self._cycle_days:
            return (NOT_DUE,)
        if self._certificates.has_certificate(student_id=fee.student_id, course_id=fee.course_id):
            return (CERTIFIED,)
        enrollment = self._enrollments.get_for_student_course(student_id=fee.student_id, course_id=fee.course_id)
        if enrollment and enrollment.is_completed:
            return (COMPLETED,)

        amount = self.price_for(fee)
        if amount <= 0:
            logger.warning("Fee %s: no usable price for a new installment", fee.fee_id)
            return (NO_PRICE,)

        due = (now + timedelta(days=self._due_in_days)).date()
        seq = last.seq + 1
        if not self._fees.append_installment(fee_id=fee.fee_id, seq=seq, amount=amount, due_date=due):
            logger.info("Fee %s: installment #%s already appended by another run", fee.fee_id, seq)
            return (RACED,)

        logger.info("Fee %s: generated installment #%s of %s due %s", fee.fee_id, seq, amount, due)
        return (GENERATED,)
