from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Course


class CourseRepository(Protocol):
    def get_by_id(self, course_id: int) -> Optional[Course]:
        raise NotImplementedError

    def list_active(self) -> Sequence[Course]:
        raise NotImplementedError

    def increment_enrolled_count(self, course_id: int) -> None:
        raise NotImplementedError
