from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone, placeholders
from .model import AttendanceDay, AttendanceRecord, MarkEntry
from .repository import AttendanceRepository

_DAY_COLUMNS = "attendance_day_id, course_id, day, is_holiday, is_locked, locked_at"


def _record(r: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        student_id=int(r["student_id"]),
        status=AttendanceStatus(r["status"]),
        marked_at=r["marked_at"],
        marked_by=int(r["marked_by"]) if r.get("marked_by") is not None else None,
        auto_marked=as_bool(r.get("auto_marked")),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _hydrate(self, cur, rows: List[Dict[str, Any]]) -> List[AttendanceDay]:
        if not rows:
            return []
        ids = [int(r["attendance_day_id"]) for r in rows]
        cur.execute(
            f"""
            SELECT attendance_day_id, student_id, status, marked_by, marked_at, auto_marked
            FROM attendance_records
            WHERE attendance_day_id IN ({placeholders(len(ids))})
            ORDER BY attendance_record_id
            """,
            tuple(ids),
        )
        by_day: Dict[int, List[AttendanceRecord]] = defaultdict(list)
        for rec in fetchall(cur):
            by_day[int(rec["attendance_day_id"])].append(_record(rec))

        return [
            AttendanceDay(
                attendance_day_id=int(r["attendance_day_id"]),
                course_id=int(r["course_id"]),
                day=r["day"],
                is_holiday=as_bool(r["is_holiday"]),
                is_locked=as_bool(r["is_locked"]),
                locked_at=r.get("locked_at"),
                records=tuple(by_day.get(int(r["attendance_day_id"]), ())),
            )
            for r in rows
        ]

    def get_for_course_and_date(self, course_id: int, day: date) -> Optional[AttendanceDay]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_DAY_COLUMNS} FROM attendance_days WHERE course_id=%s AND day=%s",
                (int(course_id), day),
            )
            row = fetchone(cur)
            found = self._hydrate(cur, [row] if row else [])
            return found[0] if found else None

    def get_or_create(self, course_id: int, day: date) -> Tuple[AttendanceDay, bool]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT IGNORE INTO attendance_days(course_id, day) VALUES(%s,%s)",
                (int(course_id), day),
            )
            created = cur.rowcount > 0
            cur.execute(
                f"SELECT {_DAY_COLUMNS} FROM attendance_days WHERE course_id=%s AND day=%s",
                (int(course_id), day),
            )
            return self._hydrate(cur, [fetchone(cur)])[0], created

    def list_for_course(self, course_id: int) -> Sequence[AttendanceDay]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_DAY_COLUMNS} FROM attendance_days WHERE course_id=%s ORDER BY day",
                (int(course_id),),
            )
            return self._hydrate(cur, fetchall(cur))

    def save_records(
        self,
        *,
        attendance_day_id: int,
        entries: Sequence[MarkEntry],
        marked_by: int,
        marked_at: datetime,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT is_locked FROM attendance_days WHERE attendance_day_id=%s FOR UPDATE",
                (int(attendance_day_id),),
            )
            r = fetchone(cur)
            if not r or as_bool(r["is_locked"]):
                return False
            for entry in entries:
                cur.execute(
                    """
                    INSERT INTO attendance_records(attendance_day_id, student_id, status, marked_by, marked_at, auto_marked)
                    VALUES(%s,%s,%s,%s,%s,0)
                    ON DUPLICATE KEY UPDATE
                        status=VALUES(status), marked_by=VALUES(marked_by),
                        marked_at=VALUES(marked_at), auto_marked=0
                    """,
                    (int(attendance_day_id), int(entry.student_id), entry.status.value, int(marked_by), marked_at),
                )
            return True

    def add_auto_absences(self, *, attendance_day_id: int, student_ids: Iterable[int], marked_at: datetime) -> int:
        created = 0
        with db_cursor(self._conn_factory) as (_, cur):
            for student_id in student_ids:
                # Existing (human) records win: uq_attendance_records_day_student.
                cur.execute(
                    """
                    INSERT IGNORE INTO attendance_records(attendance_day_id, student_id, status, marked_by, marked_at, auto_marked)
                    VALUES(%s,%s,%s,NULL,%s,1)
                    """,
                    (int(attendance_day_id), int(student_id), AttendanceStatus.ABSENT.value, marked_at),
                )
                created += cur.rowcount
        return created

    def lock(self, *, attendance_day_id: int, locked_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance_days SET is_locked=1, locked_at=%s WHERE attendance_day_id=%s AND is_locked=0",
                (locked_at, int(attendance_day_id)),
            )
            return cur.rowcount > 0

    def mark_holiday(self, *, attendance_day_id: int, locked_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_days
                SET is_holiday=1, is_locked=1, locked_at=%s
                WHERE attendance_day_id=%s AND NOT (is_holiday=1 AND is_locked=1)
                """,
                (locked_at, int(attendance_day_id)),
            )
            return cur.rowcount > 0
