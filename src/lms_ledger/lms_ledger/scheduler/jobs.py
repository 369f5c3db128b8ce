from __future__ import annotations

from typing import Optional

from ..attendance.locker import JOB_NAME as ATTENDANCE_LOCK
from ..billing.installment_generator import JOB_NAME as INSTALLMENT_GENERATION
from ..billing.overdue_evaluator import JOB_NAME as OVERDUE_EVALUATION
from ..billing.sweep import JOB_NAME as BILLING_SWEEP
from ..core.constants import DEFAULT_ATTENDANCE_LOCK_CRON, DEFAULT_BILLING_SWEEP_CRON
from .service import SweepScheduler


def register_jobs(
    scheduler: SweepScheduler,
    container,
    *,
    attendance_lock_cron: Optional[str] = DEFAULT_ATTENDANCE_LOCK_CRON,
    billing_sweep_cron: Optional[str] = DEFAULT_BILLING_SWEEP_CRON,
) -> SweepScheduler:
    scheduler.register(
        ATTENDANCE_LOCK,
        lambda: container.attendance_locker.lock_previous_day().to_dict(),
        cron=attendance_lock_cron,
        description="Auto-mark absences and lock yesterday's attendance",
    )
    scheduler.register(
        BILLING_SWEEP,
        lambda: container.billing_sweep.run(),
        cron=billing_sweep_cron,
        description="Generate monthly installments, then evaluate overdue payments",
    )
    scheduler.register(
        INSTALLMENT_GENERATION,
        lambda: container.installment_generator.run().to_dict(),
        description="Generate monthly installments",
    )
    scheduler.register(
        OVERDUE_EVALUATION,
        lambda: container.overdue_evaluator.run().to_dict(),
        description="Mark overdue installments and suspend enrollments",
    )
    return scheduler
