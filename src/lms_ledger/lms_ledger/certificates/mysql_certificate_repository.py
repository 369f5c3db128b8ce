from __future__ import annotations

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .repository import CertificateRepository


class MySQLCertificateRepository(CertificateRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def has_certificate(self, *, student_id: int, course_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS found FROM certificates WHERE student_id=%s AND course_id=%s LIMIT 1",
                (int(student_id), int(course_id)),
            )
            return fetchone(cur) is not None
