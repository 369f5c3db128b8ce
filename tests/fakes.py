"""In-memory repositories shared by the service and sweep tests."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Optional

from src.lms_ledger.lms_ledger.attendance.model import AttendanceDay, AttendanceRecord
from src.lms_ledger.lms_ledger.attendance.locker import AttendanceLocker
from src.lms_ledger.lms_ledger.attendance.service import AttendanceService
from src.lms_ledger.lms_ledger.billing.installment_generator import InstallmentGenerator
from src.lms_ledger.lms_ledger.billing.overdue_evaluator import OverdueEvaluator
from src.lms_ledger.lms_ledger.billing.sweep import BillingSweep
from src.lms_ledger.lms_ledger.core.enums import (
    AttendanceStatus,
    EnrollmentFeeStatus,
    EnrollmentStatus,
    FeeStatus,
    InstallmentStatus,
)
from src.lms_ledger.lms_ledger.courses.model import Course
from src.lms_ledger.lms_ledger.enrollments.model import Enrollment
from src.lms_ledger.lms_ledger.enrollments.service import EnrollmentService
from src.lms_ledger.lms_ledger.fees.model import Fee, Installment
from src.lms_ledger.lms_ledger.fees.service import FeeLedgerService
from src.lms_ledger.lms_ledger.settings.model import SystemSetting
from src.lms_ledger.lms_ledger.settings.service import HolidayService
from src.lms_ledger.lms_ledger.students.model import Student
from src.lms_ledger.lms_ledger.students.roll_numbers import RollNumberIssuer

_PAID = (InstallmentStatus.SUBMITTED, InstallmentStatus.VERIFIED)


class InMemoryFees:
    def __init__(self):
        self._fees: dict[int, Fee] = {}
        self._fee_id = 0
        self._inst_id = 0

    def _next_inst_id(self) -> int:
        self._inst_id += 1
        return self._inst_id

    def _store(self, fee: Fee) -> None:
        ordered = tuple(sorted(fee.installments, key=lambda i: i.seq))
        self._fees[fee.fee_id] = dataclasses.replace(fee, installments=ordered)

    def _replace_installment(self, fee_id: int, installment_id: int, **changes) -> None:
        fee = self._fees[fee_id]
        self._store(
            dataclasses.replace(
                fee,
                installments=tuple(
                    dataclasses.replace(i, **changes) if i.installment_id == installment_id else i
                    for i in fee.installments
                ),
            )
        )

    def _lookup(self, fee_id: int, installment_id: int) -> Optional[Installment]:
        fee = self._fees.get(int(fee_id))
        return fee.find_installment(installment_id) if fee else None

    def add(
        self,
        *,
        student_id: int,
        course_id: int,
        total_fee: int,
        installments: Iterable[tuple] = (),
        paid_amount: int = 0,
        status: FeeStatus = FeeStatus.PENDING,
        roll_no_assigned: bool = False,
    ) -> Fee:
        """`installments` are (amount, due_date, status[, receipt_ref]) tuples."""

        self._fee_id += 1
        rows = []
        for seq, row in enumerate(installments, start=1):
            amount, due, inst_status = row[0], row[1], row[2]
            rows.append(
                Installment(
                    installment_id=self._next_inst_id(),
                    fee_id=self._fee_id,
                    seq=seq,
                    amount=amount,
                    due_date=due,
                    status=inst_status,
                    receipt_ref=row[3] if len(row) > 3 else None,
                )
            )
        fee = Fee(
            fee_id=self._fee_id,
            student_id=student_id,
            course_id=course_id,
            total_fee=total_fee,
            paid_amount=paid_amount,
            status=status,
            roll_no_assigned=roll_no_assigned,
            installments=tuple(rows),
        )
        self._store(fee)
        return self._fees[fee.fee_id]

    def get_by_id(self, fee_id: int) -> Optional[Fee]:
        return self._fees.get(int(fee_id))

    def get_for_student_course(self, *, student_id: int, course_id: int) -> Optional[Fee]:
        for fee in self._fees.values():
            if fee.student_id == student_id and fee.course_id == course_id:
                return fee
        return None

    def list_for_student(self, student_id: int):
        return [f for f in self._fees.values() if f.student_id == student_id]

    def list_all(self):
        return list(self._fees.values())

    def list_awaiting_verification(self):
        return [
            f
            for f in self._fees.values()
            if any(
                i.status == InstallmentStatus.SUBMITTED
                or (i.status == InstallmentStatus.OVERDUE and i.receipt_ref)
                for i in f.installments
            )
        ]

    def create(self, *, student_id: int, course_id: int, total_fee: int, schedule) -> int:
        if self.get_for_student_course(student_id=student_id, course_id=course_id):
            return 0
        fee = self.add(
            student_id=student_id,
            course_id=course_id,
            total_fee=total_fee,
            installments=[(r.amount, r.due_date, r.status) for r in schedule],
        )
        return fee.fee_id

    def submit_installment(self, *, fee_id, installment_id, receipt_ref, slip_id, paid_at, allowed_from) -> bool:
        inst = self._lookup(fee_id, installment_id)
        if not inst or inst.status not in allowed_from:
            return False
        self._replace_installment(
            int(fee_id),
            int(installment_id),
            status=InstallmentStatus.SUBMITTED,
            receipt_ref=receipt_ref or inst.receipt_ref,
            slip_id=slip_id,
            paid_at=paid_at,
        )
        return True

    def verify_installment(self, *, fee_id, installment_id, verifier_id, verified_at) -> bool:
        inst = self._lookup(fee_id, installment_id)
        if not inst or inst.is_verified:
            return False
        self._replace_installment(
            int(fee_id),
            int(installment_id),
            status=InstallmentStatus.VERIFIED,
            verified_by=verifier_id,
            verified_at=verified_at,
        )
        return True

    def reject_installment(self, *, fee_id, installment_id, allowed_from) -> bool:
        inst = self._lookup(fee_id, installment_id)
        if not inst or inst.status not in allowed_from:
            return False
        self._replace_installment(
            int(fee_id),
            int(installment_id),
            status=InstallmentStatus.REJECTED,
            receipt_ref=None,
            slip_id=None,
            paid_at=None,
        )
        return True

    def mark_overdue(self, *, fee_id, installment_id) -> bool:
        inst = self._lookup(fee_id, installment_id)
        allowed = (InstallmentStatus.PENDING, InstallmentStatus.SUBMITTED, InstallmentStatus.REJECTED)
        if not inst or inst.status not in allowed:
            return False
        self._replace_installment(int(fee_id), int(installment_id), status=InstallmentStatus.OVERDUE)
        return True

    def append_installment(self, *, fee_id, seq, amount, due_date) -> bool:
        fee = self._fees[int(fee_id)]
        if fee.installment_at(seq):
            return False
        inst = Installment(
            installment_id=self._next_inst_id(),
            fee_id=fee.fee_id,
            seq=int(seq),
            amount=int(amount),
            due_date=due_date,
            status=InstallmentStatus.PENDING,
        )
        self._store(dataclasses.replace(fee, installments=fee.installments + (inst,)))
        return True

    def replace_unpaid(self, *, fee_id, rows) -> None:
        fee = self._fees[int(fee_id)]
        kept = [i for i in fee.installments if i.status in _PAID]
        for r in rows:
            kept.append(
                Installment(
                    installment_id=self._next_inst_id(),
                    fee_id=fee.fee_id,
                    seq=r.seq,
                    amount=r.amount,
                    due_date=r.due_date,
                    status=r.status,
                    verified_by=r.verified_by,
                    verified_at=r.verified_at,
                )
            )
        self._store(dataclasses.replace(fee, installments=tuple(kept)))

    def delete_installment(self, *, fee_id, installment_id) -> bool:
        inst = self._lookup(fee_id, installment_id)
        if not inst or inst.status in _PAID:
            return False
        fee = self._fees[int(fee_id)]
        remaining = tuple(
            dataclasses.replace(i, seq=i.seq - 1) if i.seq > inst.seq else i
            for i in fee.installments
            if i.installment_id != inst.installment_id
        )
        self._store(dataclasses.replace(fee, installments=remaining))
        return True

    def update_totals(self, *, fee_id, paid_amount, status) -> None:
        fee = self._fees[int(fee_id)]
        self._store(dataclasses.replace(fee, paid_amount=paid_amount, status=status))

    def price_unpriced(self, *, fee_id, total_fee) -> bool:
        fee = self._fees[int(fee_id)]
        if fee.total_fee != 0:
            return False
        self._store(dataclasses.replace(fee, total_fee=int(total_fee)))
        return True

    def mark_roll_no_assigned(self, fee_id: int) -> bool:
        fee = self._fees[int(fee_id)]
        if fee.roll_no_assigned:
            return False
        self._store(dataclasses.replace(fee, roll_no_assigned=True))
        return True


class InMemoryEnrollments:
    def __init__(self):
        self.by_id: dict[int, Enrollment] = {}
        self._id = 0

    def add(
        self,
        *,
        student_id: int,
        course_id: int,
        status: EnrollmentStatus = EnrollmentStatus.PENDING,
        fee_status: EnrollmentFeeStatus = EnrollmentFeeStatus.PENDING,
        is_active: bool = False,
        enrollment_date: Optional[datetime] = None,
    ) -> Enrollment:
        self._id += 1
        e = Enrollment(
            enrollment_id=self._id,
            student_id=student_id,
            course_id=course_id,
            status=status,
            fee_status=fee_status,
            is_active=is_active,
            enrollment_date=enrollment_date,
        )
        self.by_id[e.enrollment_id] = e
        return e

    def get_by_id(self, enrollment_id: int) -> Optional[Enrollment]:
        return self.by_id.get(int(enrollment_id))

    def get_for_student_course(self, *, student_id: int, course_id: int) -> Optional[Enrollment]:
        for e in self.by_id.values():
            if e.student_id == student_id and e.course_id == course_id:
                return e
        return None

    def list_for_student(self, student_id: int):
        return [e for e in self.by_id.values() if e.student_id == student_id]

    def list_for_course(self, course_id: int, *, statuses):
        return [e for e in self.by_id.values() if e.course_id == course_id and e.status in statuses]

    def list_open(self):
        return [e for e in self.by_id.values() if not e.is_completed]

    def create(self, *, student_id: int, course_id: int, registration_date) -> int:
        if self.get_for_student_course(student_id=student_id, course_id=course_id):
            return 0
        e = self.add(student_id=student_id, course_id=course_id)
        self.by_id[e.enrollment_id] = dataclasses.replace(e, registration_date=registration_date)
        return e.enrollment_id

    def update_activation(self, *, enrollment_id, expected_status, status, fee_status, is_active) -> bool:
        e = self.by_id.get(int(enrollment_id))
        if not e or e.status != expected_status or e.is_completed:
            return False
        self.by_id[e.enrollment_id] = dataclasses.replace(e, status=status, fee_status=fee_status, is_active=is_active)
        return True

    def set_enrollment_date_once(self, *, enrollment_id, enrolled_at) -> bool:
        e = self.by_id.get(int(enrollment_id))
        if not e or e.enrollment_date is not None:
            return False
        self.by_id[e.enrollment_id] = dataclasses.replace(e, enrollment_date=enrolled_at)
        return True

    def complete(self, *, enrollment_id, completed_at, grade=None, percentage=None) -> bool:
        e = self.by_id.get(int(enrollment_id))
        if not e or e.is_completed:
            return False
        self.by_id[e.enrollment_id] = dataclasses.replace(
            e,
            status=EnrollmentStatus.COMPLETED,
            is_active=False,
            completion_date=completed_at,
            grade=grade if grade is not None else e.grade,
            percentage=percentage if percentage is not None else e.percentage,
        )
        return True


class InMemoryCourses:
    def __init__(self, *courses: Course):
        self.by_id = {c.course_id: c for c in courses}

    def get_by_id(self, course_id: int) -> Optional[Course]:
        return self.by_id.get(int(course_id))

    def list_active(self):
        return [c for c in self.by_id.values() if c.is_active]

    def increment_enrolled_count(self, course_id: int) -> None:
        c = self.by_id[int(course_id)]
        self.by_id[c.course_id] = dataclasses.replace(c, enrolled_count=c.enrolled_count + 1)


class InMemoryStudents:
    def __init__(self, *students: Student):
        self.by_id = {s.student_id: s for s in students}

    def get_by_id(self, student_id: int, *, for_update: bool = False) -> Optional[Student]:
        return self.by_id.get(int(student_id))

    def assign_roll_no(self, *, student_id: int, roll_no: str) -> bool:
        s = self.by_id.get(int(student_id))
        if not s or s.roll_no:
            return False
        self.by_id[s.student_id] = dataclasses.replace(s, roll_no=roll_no)
        return True


class InMemoryCounters:
    def __init__(self):
        self.values: dict[str, int] = {}

    def next_value(self, name: str) -> int:
        self.values[name] = self.values.get(name, 0) + 1
        return self.values[name]


@dataclass
class InMemoryCertificates:
    issued: set = field(default_factory=set)

    def has_certificate(self, *, student_id: int, course_id: int) -> bool:
        return (student_id, course_id) in self.issued


class InMemorySettings:
    def __init__(self, **values: Any):
        self.values = dict(values)

    def get(self, key: str) -> Optional[SystemSetting]:
        if key not in self.values:
            return None
        return SystemSetting(key=key, value=self.values[key])

    def put(self, key: str, value: Any, *, updated_by=None, description=None) -> None:
        self.values[key] = value


class InMemoryAttendance:
    def __init__(self):
        self.days: dict[tuple[int, date], AttendanceDay] = {}
        self._id = 0

    def _by_id(self, attendance_day_id: int) -> AttendanceDay:
        for d in self.days.values():
            if d.attendance_day_id == attendance_day_id:
                return d
        raise KeyError(attendance_day_id)

    def _put(self, day: AttendanceDay) -> None:
        self.days[(day.course_id, day.day)] = day

    def get_for_course_and_date(self, course_id: int, day: date) -> Optional[AttendanceDay]:
        return self.days.get((int(course_id), day))

    def get_or_create(self, course_id: int, day: date) -> tuple[AttendanceDay, bool]:
        found = self.get_for_course_and_date(course_id, day)
        if found:
            return found, False
        self._id += 1
        created = AttendanceDay(attendance_day_id=self._id, course_id=int(course_id), day=day)
        self._put(created)
        return created, True

    def list_for_course(self, course_id: int):
        return sorted((d for d in self.days.values() if d.course_id == course_id), key=lambda d: d.day)

    def save_records(self, *, attendance_day_id, entries, marked_by, marked_at) -> bool:
        day = self._by_id(attendance_day_id)
        if day.is_locked:
            return False
        records = {r.student_id: r for r in day.records}
        for e in entries:
            records[e.student_id] = AttendanceRecord(
                student_id=e.student_id,
                status=e.status,
                marked_at=marked_at,
                marked_by=marked_by,
                auto_marked=False,
            )
        self._put(dataclasses.replace(day, records=tuple(records.values())))
        return True

    def add_auto_absences(self, *, attendance_day_id, student_ids, marked_at) -> int:
        day = self._by_id(attendance_day_id)
        records = list(day.records)
        existing = {r.student_id for r in records}
        created = 0
        for sid in student_ids:
            if sid in existing:
                continue
            records.append(
                AttendanceRecord(student_id=sid, status=AttendanceStatus.ABSENT, marked_at=marked_at, auto_marked=True)
            )
            existing.add(sid)
            created += 1
        self._put(dataclasses.replace(day, records=tuple(records)))
        return created

    def lock(self, *, attendance_day_id, locked_at) -> bool:
        day = self._by_id(attendance_day_id)
        if day.is_locked:
            return False
        self._put(dataclasses.replace(day, is_locked=True, locked_at=locked_at))
        return True

    def mark_holiday(self, *, attendance_day_id, locked_at) -> bool:
        day = self._by_id(attendance_day_id)
        if day.is_holiday and day.is_locked:
            return False
        self._put(dataclasses.replace(day, is_holiday=True, is_locked=True, locked_at=locked_at))
        return True


class RecordingReceipts:
    def __init__(self, *, fail: bool = False):
        self.deleted: list[str] = []
        self.fail = fail

    def delete(self, reference: str) -> None:
        if self.fail:
            raise OSError("receipt store unavailable")
        self.deleted.append(reference)


class RecordingEvents:
    def __init__(self):
        self.published: list[tuple[str, dict]] = []

    def publish(self, name: str, payload) -> None:
        self.published.append((name, dict(payload)))


def make_course(
    course_id: int = 1,
    *,
    fee: Optional[str] = "3000",
    is_active: bool = True,
    enrolled_count: int = 0,
    max_students: Optional[int] = None,
) -> Course:
    return Course(
        course_id=course_id,
        title=f"Course {course_id}",
        fee=fee,
        is_active=is_active,
        enrolled_count=enrolled_count,
        max_students=max_students,
    )


def make_student(student_id: int = 1, *, roll_no: Optional[str] = None) -> Student:
    return Student(
        student_id=student_id,
        full_name=f"Student {student_id}",
        roll_no=roll_no,
        created_at=datetime(2025, 12, 1, 9, 0),
    )


@dataclass
class World:
    """Every fake wired into the real services."""

    fees: InMemoryFees
    enrollments: InMemoryEnrollments
    courses: InMemoryCourses
    students: InMemoryStudents
    counters: InMemoryCounters
    certificates: InMemoryCertificates
    settings: InMemorySettings
    attendance: InMemoryAttendance
    receipts: RecordingReceipts
    events: RecordingEvents
    holidays: HolidayService
    enrollment_service: EnrollmentService
    ledger: FeeLedgerService
    attendance_service: AttendanceService
    generator: InstallmentGenerator
    evaluator: OverdueEvaluator
    billing_sweep: BillingSweep
    locker: AttendanceLocker


def build_world(
    *,
    courses: Iterable[Course] = (),
    students: Iterable[Student] = (),
    receipts: Optional[RecordingReceipts] = None,
    holiday_days: Optional[list[int]] = None,
) -> World:
    fees = InMemoryFees()
    enrollments = InMemoryEnrollments()
    course_repo = InMemoryCourses(*courses)
    student_repo = InMemoryStudents(*students)
    counters = InMemoryCounters()
    certificates = InMemoryCertificates()
    settings = InMemorySettings(**({"holidayDays": holiday_days} if holiday_days is not None else {}))
    attendance = InMemoryAttendance()
    receipts = receipts or RecordingReceipts()
    events = RecordingEvents()

    holidays = HolidayService(settings)
    enrollment_service = EnrollmentService(enrollments, fees, course_repo, student_repo, certificates)
    ledger = FeeLedgerService(
        fees,
        enrollment_service,
        RollNumberIssuer(student_repo, counters),
        receipts=receipts,
        events=events,
    )
    generator = InstallmentGenerator(fees, course_repo, certificates, enrollments)
    evaluator = OverdueEvaluator(enrollments, fees, enrollment_service)
    return World(
        fees=fees,
        enrollments=enrollments,
        courses=course_repo,
        students=student_repo,
        counters=counters,
        certificates=certificates,
        settings=settings,
        attendance=attendance,
        receipts=receipts,
        events=events,
        holidays=holidays,
        enrollment_service=enrollment_service,
        ledger=ledger,
        attendance_service=AttendanceService(attendance, holidays),
        generator=generator,
        evaluator=evaluator,
        billing_sweep=BillingSweep(generator, evaluator),
        locker=AttendanceLocker(attendance, course_repo, enrollments, holidays, events=events),
    )
