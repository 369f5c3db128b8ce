from __future__ import annotations

from datetime import date, timedelta, timezone
from types import SimpleNamespace

import pytest
from flask import Flask

from src.lms_ledger.lms_ledger.attendance.controller import register as register_attendance
from src.lms_ledger.lms_ledger.common.datetime_utils import now_utc
from src.lms_ledger.lms_ledger.core.enums import InstallmentStatus
from src.lms_ledger.lms_ledger.enrollments.controller import register as register_enrollments
from src.lms_ledger.lms_ledger.fees.controller import register as register_fees
from src.lms_ledger.lms_ledger.scheduler.controller import register as register_scheduler
from src.lms_ledger.lms_ledger.scheduler.jobs import register_jobs
from src.lms_ledger.lms_ledger.scheduler.service import SweepScheduler
from src.lms_ledger.lms_ledger.settings.controller import register as register_settings
from tests.fakes import build_world, make_course, make_student


@pytest.fixture
def world():
    return build_world(courses=[make_course(1, fee="3000")], students=[make_student(1), make_student(2)])


@pytest.fixture
def client(world):
    container = SimpleNamespace(
        holiday_service=world.holidays,
        enrollment_service=world.enrollment_service,
        fee_ledger_service=world.ledger,
        attendance_service=world.attendance_service,
        installment_generator=world.generator,
        overdue_evaluator=world.evaluator,
        billing_sweep=world.billing_sweep,
        attendance_locker=world.locker,
        scheduler=SweepScheduler(timezone.utc),
    )
    register_jobs(container.scheduler, container)

    app = Flask(__name__)
    app.secret_key = "test"
    for register in (register_fees, register_enrollments, register_attendance, register_settings, register_scheduler):
        register(app, container)
    return app.test_client()


def login(client, user_id, role):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["role"] = role


def test_requires_login_and_role(client):
    assert client.get("/api/fees/my").status_code == 401

    login(client, 1, "student")
    res = client.get("/api/fees/all")
    assert res.status_code == 403
    assert res.get_json()["success"] is False


def test_enroll_pay_verify_flow(client, world):
    login(client, 1, "student")
    res = client.post("/api/enrollments", json={"courseId": 1})
    assert res.status_code == 201
    body = res.get_json()
    fee_id = body["data"]["fee_id"]
    inst = body["data"]["installments"][0]
    assert inst["amount"] == 3000
    assert inst["due_date"].endswith("T00:00:00Z")

    res = client.post(f"/api/fees/{fee_id}/pay", json={"installmentId": inst["installment_id"], "slipId": "S1"})
    assert res.status_code == 200
    assert res.get_json()["data"]["status"] == "submitted"

    login(client, 99, "admin")
    verify_url = f"/api/fees/{fee_id}/installments/{inst['installment_id']}/verify"
    res = client.put(verify_url)
    assert res.status_code == 200
    assert res.get_json()["data"]["status"] == "verified"
    assert client.put(verify_url).status_code == 409

    login(client, 1, "student")
    res = client.get("/api/enrollments/my")
    assert res.get_json()["data"][0]["enrollment"]["status"] == "enrolled"


def test_domain_errors_map_to_status_codes(client, world):
    fee = world.fees.add(
        student_id=2,
        course_id=1,
        total_fee=3000,
        installments=[
            (1500, date(2026, 1, 1), InstallmentStatus.VERIFIED),
            (1500, date(2026, 2, 1), InstallmentStatus.SUBMITTED),
        ],
    )

    login(client, 1, "student")
    assert client.get(f"/api/fees/{fee.fee_id}").status_code == 403
    assert client.post(f"/api/fees/{fee.fee_id}/pay", json={"installmentId": 1}).status_code == 400
    assert client.post(f"/api/fees/{fee.fee_id}/pay", json={"installmentId": 2, "slipId": "S1"}).status_code == 403

    login(client, 99, "admin")
    assert client.get("/api/fees/424242").status_code == 404
    res = client.post(
        f"/api/fees/{fee.fee_id}/installments",
        json={"installments": [{"amount": 3000, "dueDate": "2026-01-01"}]},
    )
    assert res.status_code == 422
    res = client.post(f"/api/fees/{fee.fee_id}/installments", json={"installments": "monthly"})
    assert res.status_code == 400


def test_holiday_settings(client):
    login(client, 5, "teacher")
    assert client.put("/api/settings/holidays", json={"holidayDays": [0]}).status_code == 403
    assert client.get("/api/settings/holidays").get_json()["holidayDays"] == []

    login(client, 99, "admin")
    res = client.put("/api/settings/holidays", json={"holidayDays": [6, 0]})
    assert res.get_json() == {"success": True, "holidayDays": [0, 6]}
    assert client.put("/api/settings/holidays", json={"holidayDays": [8]}).status_code == 400


def test_attendance_routes(client, world):
    today = now_utc().date()
    login(client, 5, "teacher")

    res = client.post(
        "/api/attendance",
        json={"courseId": 1, "date": today.isoformat(), "records": [{"studentId": 1, "status": "present"}]},
    )
    assert res.status_code == 200
    assert res.get_json()["data"]["records"][0]["status"] == "present"

    sheet = world.attendance.get_for_course_and_date(1, today)
    world.attendance.lock(attendance_day_id=sheet.attendance_day_id, locked_at=now_utc())
    res = client.post(
        "/api/attendance",
        json={"courseId": 1, "date": today.isoformat(), "records": [{"studentId": 1, "status": "absent"}]},
    )
    assert res.status_code == 409

    res = client.get(f"/api/attendance/1/{today.isoformat()}")
    assert res.get_json()["canEdit"] is False

    login(client, 1, "student")
    assert client.get(f"/api/attendance/1/{today.isoformat()}").status_code == 403
    history = client.get("/api/attendance/my/1").get_json()["data"]
    assert [h["status"] for h in history] == ["present"]


def test_admin_can_run_jobs(client, world):
    world.fees.add(
        student_id=1,
        course_id=1,
        total_fee=3000,
        installments=[(3000, now_utc().date() - timedelta(days=40), InstallmentStatus.VERIFIED)],
    )
    world.enrollments.add(student_id=1, course_id=1)

    login(client, 99, "admin")
    res = client.post("/api/fees/check-overdue")
    assert res.status_code == 200
    assert res.get_json()["data"]["counts"] == {"activated": 1}

    assert client.post("/api/admin/jobs/nope/run").status_code == 404
    res = client.post("/api/admin/jobs/installment_generation/run")
    assert res.get_json()["data"]["counts"] == {"generated": 1}

    jobs = client.get("/api/admin/jobs").get_json()
    assert {j["name"] for j in jobs["data"]} == {
        "attendance_lock",
        "billing_sweep",
        "installment_generation",
        "overdue_evaluation",
    }
    assert jobs["running"] is False
