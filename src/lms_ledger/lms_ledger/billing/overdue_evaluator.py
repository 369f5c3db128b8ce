"""Overdue detection and enrollment suspension.

Each enrollment is handled on its own: unverified installments more than
OVERDUE_GRACE_DAYS past due are marked overdue, then the enrollment is driven
to the state its ledger implies. Running it again with no payment activity in
between changes nothing.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import now_utc
from ..common.sweep import SweepResult, run_sweep
from ..common.unit_of_work import NoTransaction, UnitOfWork
from ..core.enums import InstallmentStatus
from ..enrollments.model import Enrollment, is_first_installment_verified
from ..enrollments.repository import EnrollmentRepository
from ..enrollments.service import EnrollmentService
from ..fees.repository import FeeRepository

logger = logging.getLogger(__name__)

JOB_NAME = "overdue_evaluation"

MARKED_OVERDUE = "marked_overdue"
COMPLETED = "completed"
NO_FEE = "no_fee"


class OverdueEvaluator:
    def __init__(
        self,
        enrollments: EnrollmentRepository,
        fees: FeeRepository,
        enrollment_service: EnrollmentService,
        *,
        unit_of_work: Optional[UnitOfWork] = None,
    ):
        self._enrollments = enrollments
        self._fees = fees
        self._enrollment_service = enrollment_service
        self._uow = unit_of_work or NoTransaction()

    def run(self, *, now: Optional[datetime] = None) -> SweepResult:
        now = now or now_utc()
        return run_sweep(
            JOB_NAME,
            self._enrollments.list_open(),
            lambda e: self.process_enrollment(e, now=now),
            describe=lambda e: f"enrollment {e.enrollment_id}",
        )

    def process_enrollment(self, enrollment: Enrollment, *, now: datetime) -> tuple[str, ...]:
        if self._enrollment_service.complete_if_certified(enrollment, now=now):
            logger.info("Enrollment %s completed: certificate issued", enrollment.enrollment_id)
            return (COMPLETED,)

        fee = self._fees.get_for_student_course(student_id=enrollment.student_id, course_id=enrollment.course_id)
        if not fee:
            return (NO_FEE,)

        tags: list[str] = []
        with self._uow.transaction():
            if is_first_installment_verified(fee.installments):
                for inst in fee.installments:
                    if inst.status == InstallmentStatus.OVERDUE or not inst.is_overdue_at(now):
                        continue
                    if self._fees.mark_overdue(fee_id=fee.fee_id, installment_id=inst.installment_id):
                        logger.info(
                            "Fee %s installment #%s overdue (%s days past due)",
                            fee.fee_id,
                            inst.seq,
                            inst.days_past_due(now),
                        )
                        tags.append(MARKED_OVERDUE)
                if tags:
                    fee = self._fees.get_by_id(fee.fee_id) or fee
            tags.append(self._enrollment_service.sync_with_fee(fee, now=now))
        return tuple(tags)
