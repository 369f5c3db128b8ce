from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from src.lms_ledger.lms_ledger.core.enums import (
    EnrollmentFeeStatus,
    EnrollmentStatus,
    InstallmentStatus,
    Role,
)
from src.lms_ledger.lms_ledger.core.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
)
from src.lms_ledger.lms_ledger.enrollments.model import compute_is_active
from src.lms_ledger.lms_ledger.fees.model import PlannedInstallment
from tests.fakes import build_world, make_course, make_student

NOW = datetime(2026, 1, 2, 8, 0, tzinfo=timezone.utc)


def test_create_enrollment_creates_fee_with_default_installment():
    world = build_world(courses=[make_course(1, fee="5,000 PKR")], students=[make_student(1)])

    view = world.enrollment_service.create_enrollment(
        student_id=1, course_id=1, current_role=Role.STUDENT, actor_id=1, now=NOW
    )

    assert view.enrollment.status == EnrollmentStatus.PENDING
    assert view.enrollment.is_active is False
    assert view.enrollment.registration_date == make_student(1).created_at
    fee = world.fees.get_for_student_course(student_id=1, course_id=1)
    assert fee.total_fee == 5000
    assert view.fee_id == fee.fee_id
    assert [(i.seq, i.amount, i.due_date) for i in view.installments] == [(1, 5000, date(2026, 1, 9))]


def test_create_enrollment_with_admin_schedule():
    world = build_world(courses=[make_course(1, fee="Coming Soon")], students=[make_student(1)])

    view = world.enrollment_service.create_enrollment(
        student_id=1,
        course_id=1,
        current_role=Role.ADMIN,
        actor_id=99,
        schedule=[
            PlannedInstallment(amount=2000, due_date=date(2026, 1, 10)),
            PlannedInstallment(amount=1000, due_date=date(2026, 2, 10)),
        ],
        now=NOW,
    )

    assert [i.amount for i in view.installments] == [2000, 1000]
    assert world.fees.get_by_id(view.fee_id).total_fee == 3000


def test_duplicate_enrollment_is_rejected():
    world = build_world(courses=[make_course(1)], students=[make_student(1)])
    world.enrollment_service.create_enrollment(student_id=1, course_id=1, current_role=Role.STUDENT, actor_id=1)

    with pytest.raises(InvalidStateError):
        world.enrollment_service.create_enrollment(student_id=1, course_id=1, current_role=Role.STUDENT, actor_id=1)
    assert len(world.fees.list_all()) == 1


def test_full_or_unknown_course_is_rejected():
    world = build_world(
        courses=[make_course(1, max_students=1, enrolled_count=1), make_course(2, is_active=False)],
        students=[make_student(1)],
    )

    with pytest.raises(InvalidStateError):
        world.enrollment_service.create_enrollment(student_id=1, course_id=1, current_role=Role.STUDENT, actor_id=1)
    with pytest.raises(NotFoundError):
        world.enrollment_service.create_enrollment(student_id=1, course_id=2, current_role=Role.STUDENT, actor_id=1)
    with pytest.raises(NotFoundError):
        world.enrollment_service.create_enrollment(student_id=5, course_id=3, current_role=Role.ADMIN, actor_id=1)


def test_student_cannot_enroll_someone_else():
    world = build_world(courses=[make_course(1)], students=[make_student(1), make_student(2)])

    with pytest.raises(AuthorizationError):
        world.enrollment_service.create_enrollment(student_id=2, course_id=1, current_role=Role.STUDENT, actor_id=1)


def test_repeated_sync_counts_enrollment_once():
    world = build_world(courses=[make_course(1)], students=[make_student(1)])
    fee = world.fees.add(
        student_id=1,
        course_id=1,
        total_fee=3000,
        installments=[(3000, date(2026, 1, 1), InstallmentStatus.VERIFIED)],
    )
    world.enrollments.add(student_id=1, course_id=1)

    first = world.enrollment_service.sync_with_fee(fee, now=NOW)
    second = world.enrollment_service.sync_with_fee(fee, now=NOW)

    assert (first, second) == ("activated", "unchanged")
    assert world.courses.get_by_id(1).enrolled_count == 1


def test_complete_enrollment_is_terminal_and_ignored_by_sync():
    world = build_world(courses=[make_course(1)], students=[make_student(1)])
    fee = world.fees.add(
        student_id=1,
        course_id=1,
        total_fee=3000,
        installments=[(3000, date(2026, 1, 1), InstallmentStatus.VERIFIED)],
    )
    e = world.enrollments.add(
        student_id=1,
        course_id=1,
        status=EnrollmentStatus.ENROLLED,
        fee_status=EnrollmentFeeStatus.VERIFIED,
        is_active=True,
    )

    done = world.enrollment_service.complete_enrollment(
        e.enrollment_id, current_role=Role.TEACHER, grade="A", percentage=91.5, now=NOW
    )

    assert done.status == EnrollmentStatus.COMPLETED
    assert done.is_active is False
    assert done.completion_date == NOW
    assert done.grade == "A"
    assert world.enrollment_service.sync_with_fee(fee, now=NOW) == "completed"
    with pytest.raises(InvalidStateError):
        world.enrollment_service.complete_enrollment(e.enrollment_id, current_role=Role.ADMIN)


def test_certificate_hook_completes_enrollment():
    world = build_world(courses=[make_course(1)], students=[make_student(1)])
    world.enrollments.add(student_id=1, course_id=1, status=EnrollmentStatus.ENROLLED, is_active=True)

    assert world.enrollment_service.on_certificate_issued(student_id=1, course_id=1, now=NOW) is True
    assert world.enrollment_service.on_certificate_issued(student_id=1, course_id=1, now=NOW) is False
    assert world.enrollments.get_for_student_course(student_id=1, course_id=1).is_completed


def test_is_active_requires_first_verified_and_nothing_overdue():
    world = build_world()
    fee = world.fees.add(
        student_id=1,
        course_id=1,
        total_fee=6000,
        installments=[
            (3000, date(2025, 12, 1), InstallmentStatus.VERIFIED),
            (3000, date(2026, 1, 1), InstallmentStatus.PENDING),
        ],
    )

    # Seven days past due is still within grace; eight is overdue.
    assert compute_is_active(fee.installments, datetime(2026, 1, 8, tzinfo=timezone.utc)) is True
    assert compute_is_active(fee.installments, datetime(2026, 1, 9, tzinfo=timezone.utc)) is False

    unpaid_first = world.fees.add(
        student_id=2,
        course_id=1,
        total_fee=3000,
        installments=[(3000, date(2026, 1, 1), InstallmentStatus.SUBMITTED)],
    )
    assert compute_is_active(unpaid_first.installments, NOW) is False
