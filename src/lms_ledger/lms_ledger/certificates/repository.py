from __future__ import annotations

from typing import Protocol


class CertificateRepository(Protocol):
    """Read side of the external certificate workflow."""

    def has_certificate(self, *, student_id: int, course_id: int) -> bool:
        raise NotImplementedError
