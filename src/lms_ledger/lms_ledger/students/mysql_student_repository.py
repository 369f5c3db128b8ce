from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Student
from .repository import CounterRepository, StudentRepository


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, student_id: int, *, for_update: bool = False) -> Optional[Student]:
        lock = " FOR UPDATE" if for_update else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT student_id, full_name, email, roll_no, created_at FROM students WHERE student_id=%s{lock}",
                (int(student_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Student(
                student_id=int(r["student_id"]),
                full_name=r["full_name"],
                roll_no=r.get("roll_no") or None,
                created_at=r.get("created_at"),
                email=r.get("email"),
            )

    def assign_roll_no(self, *, student_id: int, roll_no: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE students SET roll_no=%s WHERE student_id=%s AND (roll_no IS NULL OR roll_no='')",
                (roll_no, int(student_id)),
            )
            return cur.rowcount > 0


class MySQLCounterRepository(CounterRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def next_value(self, name: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            # LAST_INSERT_ID(expr) makes the incremented value readable on this connection only.
            cur.execute(
                """
                INSERT INTO counters(name, value) VALUES(%s, LAST_INSERT_ID(1))
                ON DUPLICATE KEY UPDATE value=LAST_INSERT_ID(value + 1)
                """,
                (name,),
            )
            cur.execute("SELECT LAST_INSERT_ID() AS value")
            r = fetchone(cur)
            return int(r["value"])
