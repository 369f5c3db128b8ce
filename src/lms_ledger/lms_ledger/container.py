from __future__ import annotations

from dataclasses import dataclass
from datetime import timezone, tzinfo
from typing import Optional

from .attendance.locker import AttendanceLocker
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .billing.installment_generator import InstallmentGenerator
from .billing.overdue_evaluator import OverdueEvaluator
from .billing.sweep import BillingSweep
from .certificates.mysql_certificate_repository import MySQLCertificateRepository
from .core.constants import (
    DEFAULT_ATTENDANCE_EDIT_CUTOFF_HOUR,
    DEFAULT_ATTENDANCE_LOCK_CRON,
    DEFAULT_BILLING_SWEEP_CRON,
)
from .courses.mysql_course_repository import MySQLCourseRepository
from .database.connection import DBConfig, DatabaseConnection
from .enrollments.mysql_enrollment_repository import MySQLEnrollmentRepository
from .enrollments.service import EnrollmentService
from .fees.mysql_fee_repository import MySQLFeeRepository
from .fees.service import FeeLedgerService
from .integrations.events import EventPublisher, LoggingEventPublisher
from .integrations.receipts import LocalReceiptStore, NullReceiptStore, ReceiptStore
from .scheduler.jobs import register_jobs
from .scheduler.service import SweepScheduler
from .settings.mysql_settings_repository import MySQLSettingsRepository
from .settings.service import HolidayService
from .students.mysql_student_repository import MySQLCounterRepository, MySQLStudentRepository
from .students.roll_numbers import RollNumberIssuer


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    fees_repo: MySQLFeeRepository
    enrollments_repo: MySQLEnrollmentRepository
    courses_repo: MySQLCourseRepository
    students_repo: MySQLStudentRepository
    counters_repo: MySQLCounterRepository
    certificates_repo: MySQLCertificateRepository
    attendance_repo: MySQLAttendanceRepository
    settings_repo: MySQLSettingsRepository

    holiday_service: HolidayService
    enrollment_service: EnrollmentService
    fee_ledger_service: FeeLedgerService
    attendance_service: AttendanceService
    installment_generator: InstallmentGenerator
    overdue_evaluator: OverdueEvaluator
    billing_sweep: BillingSweep
    attendance_locker: AttendanceLocker
    scheduler: SweepScheduler


def build_container(
    *,
    db_config: dict,
    tz: tzinfo = timezone.utc,
    receipt_dir: Optional[str] = None,
    events: Optional[EventPublisher] = None,
    attendance_lock_cron: str = DEFAULT_ATTENDANCE_LOCK_CRON,
    billing_sweep_cron: str = DEFAULT_BILLING_SWEEP_CRON,
    attendance_edit_cutoff_hour: int = DEFAULT_ATTENDANCE_EDIT_CUTOFF_HOUR,
) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)
    receipts: ReceiptStore = LocalReceiptStore(receipt_dir) if receipt_dir else NullReceiptStore()
    events = events or LoggingEventPublisher()

    fees_repo = MySQLFeeRepository(conn)
    enrollments_repo = MySQLEnrollmentRepository(conn)
    courses_repo = MySQLCourseRepository(conn)
    students_repo = MySQLStudentRepository(conn)
    counters_repo = MySQLCounterRepository(conn)
    certificates_repo = MySQLCertificateRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    settings_repo = MySQLSettingsRepository(conn)

    holiday_service = HolidayService(settings_repo)
    enrollment_service = EnrollmentService(
        enrollments_repo,
        fees_repo,
        courses_repo,
        students_repo,
        certificates_repo,
        unit_of_work=conn,
    )
    fee_ledger_service = FeeLedgerService(
        fees_repo,
        enrollment_service,
        RollNumberIssuer(students_repo, counters_repo),
        unit_of_work=conn,
        receipts=receipts,
        events=events,
    )
    attendance_service = AttendanceService(
        attendance_repo,
        holiday_service,
        unit_of_work=conn,
        edit_cutoff_hour=attendance_edit_cutoff_hour,
        tz=tz,
    )
    installment_generator = InstallmentGenerator(fees_repo, courses_repo, certificates_repo, enrollments_repo)
    overdue_evaluator = OverdueEvaluator(enrollments_repo, fees_repo, enrollment_service, unit_of_work=conn)
    billing_sweep = BillingSweep(installment_generator, overdue_evaluator)
    attendance_locker = AttendanceLocker(
        attendance_repo,
        courses_repo,
        enrollments_repo,
        holiday_service,
        unit_of_work=conn,
        events=events,
        tz=tz,
    )

    container = Container(
        conn=conn,
        fees_repo=fees_repo,
        enrollments_repo=enrollments_repo,
        courses_repo=courses_repo,
        students_repo=students_repo,
        counters_repo=counters_repo,
        certificates_repo=certificates_repo,
        attendance_repo=attendance_repo,
        settings_repo=settings_repo,
        holiday_service=holiday_service,
        enrollment_service=enrollment_service,
        fee_ledger_service=fee_ledger_service,
        attendance_service=attendance_service,
        installment_generator=installment_generator,
        overdue_evaluator=overdue_evaluator,
        billing_sweep=billing_sweep,
        attendance_locker=attendance_locker,
        scheduler=SweepScheduler(tz),
    )
    register_jobs(
        container.scheduler,
        container,
        attendance_lock_cron=attendance_lock_cron,
        billing_sweep_cron=billing_sweep_cron,
    )
    return container
