from __future__ import annotations

from datetime import date, datetime
from typing import Any, Collection, Dict, List, Optional, Sequence

import mysql.connector

from ..core.enums import FeeStatus, InstallmentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone, placeholders
from .model import Fee, Installment, NewInstallment
from .repository import FeeRepository

_FEE_COLUMNS = "fee_id, student_id, course_id, total_fee, paid_amount, status, roll_no_assigned, created_at"
_INSTALLMENT_COLUMNS = (
    "installment_id, fee_id, seq, amount, due_date, status, receipt_ref, slip_id, "
    "paid_at, verified_by, verified_at"
)
_PAID = (InstallmentStatus.SUBMITTED.value, InstallmentStatus.VERIFIED.value)


def _installment(r: Dict[str, Any]) -> Installment:
    return Installment(
        installment_id=int(r["installment_id"]),
        fee_id=int(r["fee_id"]),
        seq=int(r["seq"]),
        amount=int(r["amount"]),
        due_date=r["due_date"],
        status=InstallmentStatus(r["status"]),
        receipt_ref=r.get("receipt_ref"),
        slip_id=r.get("slip_id"),
        paid_at=r.get("paid_at"),
        verified_by=r.get("verified_by"),
        verified_at=r.get("verified_at"),
    )


class MySQLFeeRepository(FeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _hydrate(self, cur, rows: List[Dict[str, Any]]) -> List[Fee]:
        if not rows:
            return []
        ids = [int(r["fee_id"]) for r in rows]
        cur.execute(
            f"""
            SELECT {_INSTALLMENT_COLUMNS}
            FROM installments
            WHERE fee_id IN ({placeholders(len(ids))})
            ORDER BY fee_id, seq
            """,
            tuple(ids),
        )
        by_fee: dict[int, list[Installment]] = {i: [] for i in ids}
        for r in fetchall(cur):
            by_fee[int(r["fee_id"])].append(_installment(r))

        return [
            Fee(
                fee_id=int(r["fee_id"]),
                student_id=int(r["student_id"]),
                course_id=int(r["course_id"]),
                total_fee=int(r["total_fee"]),
                paid_amount=int(r["paid_amount"]),
                status=FeeStatus(r["status"]),
                roll_no_assigned=as_bool(r["roll_no_assigned"]),
                installments=tuple(by_fee[int(r["fee_id"])]),
                created_at=r.get("created_at"),
            )
            for r in rows
        ]

    def _select(self, where: str, params: tuple, *, order: str = "fee_id") -> List[Fee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_FEE_COLUMNS} FROM fees WHERE {where} ORDER BY {order}", params)
            return self._hydrate(cur, fetchall(cur))

    def get_by_id(self, fee_id: int) -> Optional[Fee]:
        found = self._select("fee_id=%s", (int(fee_id),))
        return found[0] if found else None

    def get_for_student_course(self, *, student_id: int, course_id: int) -> Optional[Fee]:
        found = self._select("student_id=%s AND course_id=%s", (int(student_id), int(course_id)))
        return found[0] if found else None

    def list_for_student(self, student_id: int) -> Sequence[Fee]:
        return self._select("student_id=%s", (int(student_id),), order="created_at DESC")

    def list_all(self) -> Sequence[Fee]:
        return self._select("1=1", ())

    def list_awaiting_verification(self) -> Sequence[Fee]:
        return self._select(
            """
            fee_id IN (
                SELECT fee_id FROM installments
                WHERE status=%s OR (status=%s AND receipt_ref IS NOT NULL)
            )
            """,
            (InstallmentStatus.SUBMITTED.value, InstallmentStatus.OVERDUE.value),
            order="updated_at DESC",
        )

    def _insert_installments(self, cur, fee_id: int, rows: Sequence[NewInstallment]) -> None:
        for row in rows:
            cur.execute(
                """
                INSERT INTO installments(fee_id, seq, amount, due_date, status, verified_by, verified_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(fee_id),
                    int(row.seq),
                    int(row.amount),
                    row.due_date,
                    row.status.value,
                    row.verified_by,
                    row.verified_at,
                ),
            )

    def create(self, *, student_id: int, course_id: int, total_fee: int, schedule: Sequence[NewInstallment]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    "INSERT INTO fees(student_id, course_id, total_fee, status) VALUES(%s,%s,%s,%s)",
                    (int(student_id), int(course_id), int(total_fee), FeeStatus.PENDING.value),
                )
            except mysql.connector.IntegrityError:
                return 0
            fee_id = int(cur.lastrowid)
            self._insert_installments(cur, fee_id, schedule)
            return fee_id

    def submit_installment(
        self,
        *,
        fee_id: int,
        installment_id: int,
        receipt_ref: Optional[str],
        slip_id: Optional[str],
        paid_at: datetime,
        allowed_from: Collection[InstallmentStatus],
    ) -> bool:
        allowed = [s.value for s in allowed_from]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE installments
                SET status=%s, slip_id=%s, receipt_ref=COALESCE(%s, receipt_ref), paid_at=%s
                WHERE fee_id=%s AND installment_id=%s AND status IN ({placeholders(len(allowed))})
                """,
                (
                    InstallmentStatus.SUBMITTED.value,
                    slip_id,
                    receipt_ref,
                    paid_at,
                    int(fee_id),
                    int(installment_id),
                    *allowed,
                ),
            )
            return cur.rowcount > 0

    def verify_installment(self, *, fee_id: int, installment_id: int, verifier_id: int, verified_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE installments
                SET status=%s, verified_by=%s, verified_at=%s
                WHERE fee_id=%s AND installment_id=%s AND status<>%s
                """,
                (
                    InstallmentStatus.VERIFIED.value,
                    int(verifier_id),
                    verified_at,
                    int(fee_id),
                    int(installment_id),
                    InstallmentStatus.VERIFIED.value,
                ),
            )
            return cur.rowcount > 0

    def reject_installment(
        self, *, fee_id: int, installment_id: int, allowed_from: Collection[InstallmentStatus]
    ) -> bool:
        allowed = [s.value for s in allowed_from]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE installments
                SET status=%s, receipt_ref=NULL, slip_id=NULL, paid_at=NULL
                WHERE fee_id=%s AND installment_id=%s AND status IN ({placeholders(len(allowed))})
                """,
                (InstallmentStatus.REJECTED.value, int(fee_id), int(installment_id), *allowed),
            )
            return cur.rowcount > 0

    def mark_overdue(self, *, fee_id: int, installment_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE installments
                SET status=%s
                WHERE fee_id=%s AND installment_id=%s AND status IN (%s,%s,%s)
                """,
                (
                    InstallmentStatus.OVERDUE.value,
                    int(fee_id),
                    int(installment_id),
                    InstallmentStatus.PENDING.value,
                    InstallmentStatus.SUBMITTED.value,
                    InstallmentStatus.REJECTED.value,
                ),
            )
            return cur.rowcount > 0

    def append_installment(self, *, fee_id: int, seq: int, amount: int, due_date: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            # uq_installments_fee_seq turns a concurrent append at the same position into a no-op.
            cur.execute(
                """
                INSERT IGNORE INTO installments(fee_id, seq, amount, due_date, status)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(fee_id), int(seq), int(amount), due_date, InstallmentStatus.PENDING.value),
            )
            return cur.rowcount > 0

    def replace_unpaid(self, *, fee_id: int, rows: Sequence[NewInstallment]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM installments WHERE fee_id=%s AND status NOT IN (%s,%s)",
                (int(fee_id), *_PAID),
            )
            self._insert_installments(cur, int(fee_id), rows)

    def delete_installment(self, *, fee_id: int, installment_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT seq FROM installments WHERE fee_id=%s AND installment_id=%s FOR UPDATE",
                (int(fee_id), int(installment_id)),
            )
            r = fetchone(cur)
            if not r:
                return False
            cur.execute(
                "DELETE FROM installments WHERE fee_id=%s AND installment_id=%s AND status NOT IN (%s,%s)",
                (int(fee_id), int(installment_id), *_PAID),
            )
            if cur.rowcount == 0:
                return False
            cur.execute(
                "UPDATE installments SET seq=seq-1 WHERE fee_id=%s AND seq>%s ORDER BY seq",
                (int(fee_id), int(r["seq"])),
            )
            return True

    def update_totals(self, *, fee_id: int, paid_amount: int, status: FeeStatus) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE fees SET paid_amount=%s, status=%s WHERE fee_id=%s",
                (int(paid_amount), status.value, int(fee_id)),
            )

    def price_unpriced(self, *, fee_id: int, total_fee: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE fees SET total_fee=%s WHERE fee_id=%s AND total_fee=0",
                (int(total_fee), int(fee_id)),
            )
            return cur.rowcount > 0

    def mark_roll_no_assigned(self, fee_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE fees SET roll_no_assigned=1 WHERE fee_id=%s AND roll_no_assigned=0",
                (int(fee_id),),
            )
            return cur.rowcount > 0
