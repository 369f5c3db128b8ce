from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone
from .model import Course
from .repository import CourseRepository


def _course(r: Dict[str, Any]) -> Course:
    return Course(
        course_id=int(r["course_id"]),
        title=r["title"],
        fee=r.get("fee"),
        is_active=as_bool(r["is_active"]),
        enrolled_count=int(r.get("enrolled_count") or 0),
        max_students=int(r["max_students"]) if r.get("max_students") is not None else None,
    )


class MySQLCourseRepository(CourseRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, course_id: int) -> Optional[Course]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT course_id, title, fee, is_active, enrolled_count, max_students
                FROM courses
                WHERE course_id=%s
                """,
                (int(course_id),),
            )
            r = fetchone(cur)
            return _course(r) if r else None

    def list_active(self) -> Sequence[Course]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT course_id, title, fee, is_active, enrolled_count, max_students
                FROM courses
                WHERE is_active=1
                ORDER BY course_id
                """
            )
            return [_course(r) for r in fetchall(cur)]

    def increment_enrolled_count(self, course_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE courses SET enrolled_count=enrolled_count+1 WHERE course_id=%s", (int(course_id),))
