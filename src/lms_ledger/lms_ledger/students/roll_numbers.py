from __future__ import annotations

import logging
from typing import Optional

from ..core.constants import ROLL_NO_COUNTER, ROLL_NO_WIDTH
from ..core.exceptions import NotFoundError
from .repository import CounterRepository, StudentRepository

logger = logging.getLogger(__name__)


def format_roll_no(value: int) -> str:
    return str(int(value)).zfill(ROLL_NO_WIDTH)


class RollNumberIssuer:
    """Issues sequential roll numbers, at most one per student ever.

    The student row is read with a row lock so two first-time verifications
    for the same student (e.g. two courses) serialize on it; the conditional
    `assign_roll_no` is the final guard.
    """

    def __init__(self, students: StudentRepository, counters: CounterRepository, *, counter_name: str = ROLL_NO_COUNTER):
        self._students = students
        self._counters = counters
        self._counter_name = counter_name

    def issue_if_missing(self, student_id: int) -> Optional[str]:
        student = self._students.get_by_id(int(student_id), for_update=True)
        if not student:
            raise NotFoundError("Student not found")
        if student.roll_no:
            return student.roll_no

        roll_no = format_roll_no(self._counters.next_value(self._counter_name))
        if self._students.assign_roll_no(student_id=int(student_id), roll_no=roll_no):
            logger.info("Assigned roll number %s to student %s", roll_no, student_id)
            return roll_no

        current = self._students.get_by_id(int(student_id))
        logger.warning(
            "Roll number %s discarded: student %s was assigned %s concurrently",
            roll_no,
            student_id,
            current.roll_no if current else None,
        )
        return current.roll_no if current else None
