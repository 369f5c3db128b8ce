from __future__ import annotations

from datetime import datetime
from typing import Any, Collection, Dict, Optional, Sequence

import mysql.connector

from ..core.enums import EnrollmentFeeStatus, EnrollmentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone, placeholders
from .model import Enrollment
from .repository import EnrollmentRepository

_COLUMNS = (
    "enrollment_id, student_id, course_id, status, fee_status, is_active, "
    "registration_date, enrollment_date, completion_date, grade, percentage"
)


def _enrollment(r: Dict[str, Any]) -> Enrollment:
    return Enrollment(
        enrollment_id=int(r["enrollment_id"]),
        student_id=int(r["student_id"]),
        course_id=int(r["course_id"]),
        status=EnrollmentStatus(r["status"]),
        fee_status=EnrollmentFeeStatus(r["fee_status"]),
        is_active=as_bool(r["is_active"]),
        registration_date=r.get("registration_date"),
        enrollment_date=r.get("enrollment_date"),
        completion_date=r.get("completion_date"),
        grade=r.get("grade"),
        percentage=float(r["percentage"]) if r.get("percentage") is not None else None,
    )


class MySQLEnrollmentRepository(EnrollmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self, where: str, params: tuple, *, order: str = "enrollment_id") -> list[Enrollment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM enrollments WHERE {where} ORDER BY {order}", params)
            return [_enrollment(r) for r in fetchall(cur)]

    def get_by_id(self, enrollment_id: int) -> Optional[Enrollment]:
        found = self._select("enrollment_id=%s", (int(enrollment_id),))
        return found[0] if found else None

    def get_for_student_course(self, *, student_id: int, course_id: int) -> Optional[Enrollment]:
        found = self._select("student_id=%s AND course_id=%s", (int(student_id), int(course_id)))
        return found[0] if found else None

    def list_for_student(self, student_id: int) -> Sequence[Enrollment]:
        return self._select("student_id=%s", (int(student_id),), order="created_at DESC")

    def list_for_course(self, course_id: int, *, statuses: Collection[EnrollmentStatus]) -> Sequence[Enrollment]:
        values = [s.value for s in statuses]
        if not values:
            return []
        return self._select(
            f"course_id=%s AND status IN ({placeholders(len(values))})",
            (int(course_id), *values),
        )

    def list_open(self) -> Sequence[Enrollment]:
        return self._select("status<>%s", (EnrollmentStatus.COMPLETED.value,))

    def create(self, *, student_id: int, course_id: int, registration_date: Optional[datetime]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    """
                    INSERT INTO enrollments(student_id, course_id, status, fee_status, is_active, registration_date)
                    VALUES(%s,%s,%s,%s,0,%s)
                    """,
                    (
                        int(student_id),
                        int(course_id),
                        EnrollmentStatus.PENDING.value,
                        EnrollmentFeeStatus.PENDING.value,
                        registration_date,
                    ),
                )
            except mysql.connector.IntegrityError:
                return 0
            return int(cur.lastrowid)

    def update_activation(
        self,
        *,
        enrollment_id: int,
        expected_status: EnrollmentStatus,
        status: EnrollmentStatus,
        fee_status: EnrollmentFeeStatus,
        is_active: bool,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE enrollments
                SET status=%s, fee_status=%s, is_active=%s
                WHERE enrollment_id=%s AND status=%s AND status<>%s
                """,
                (
                    status.value,
                    fee_status.value,
                    1 if is_active else 0,
                    int(enrollment_id),
                    expected_status.value,
                    EnrollmentStatus.COMPLETED.value,
                ),
            )
            return cur.rowcount > 0

    def set_enrollment_date_once(self, *, enrollment_id: int, enrolled_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE enrollments SET enrollment_date=%s WHERE enrollment_id=%s AND enrollment_date IS NULL",
                (enrolled_at, int(enrollment_id)),
            )
            return cur.rowcount > 0

    def complete(
        self,
        *,
        enrollment_id: int,
        completed_at: datetime,
        grade: Optional[str] = None,
        percentage: Optional[float] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE enrollments
                SET status=%s, is_active=0, completion_date=%s,
                    grade=COALESCE(%s, grade), percentage=COALESCE(%s, percentage)
                WHERE enrollment_id=%s AND status<>%s
                """,
                (
                    EnrollmentStatus.COMPLETED.value,
                    completed_at,
                    grade,
                    percentage,
                    int(enrollment_id),
                    EnrollmentStatus.COMPLETED.value,
                ),
            )
            return cur.rowcount > 0
