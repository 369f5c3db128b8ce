from __future__ import annotations

from flask import request

from ..common.web import current_actor, error_response, login_required, ok, staff_required
from ..core.exceptions import DomainError, ValidationError
from ..fees.controller import parse_schedule


def register(app, container) -> None:
    enrollments = container.enrollment_service

    @app.post("/api/enrollments")
    @login_required
    def enroll():
        data = request.get_json(silent=True) or {}
        actor = current_actor()
        try:
            schedule = parse_schedule(data["installments"]) if data.get("installments") else None
            view = enrollments.create_enrollment(
                student_id=int(data.get("studentId") or actor.user_id),
                course_id=int(data.get("courseId") or 0),
                current_role=actor.role,
                actor_id=actor.user_id,
                schedule=schedule,
            )
        except DomainError as exc:
            return error_response(exc)
        except ValueError:
            return error_response(ValidationError("courseId and studentId must be integers"))
        return ok(view, status=201, message="Enrollment created")

    @app.get("/api/enrollments/my")
    @login_required
    def my_enrollments():
        return ok(enrollments.list_for_student(current_actor().user_id))

    @app.get("/api/enrollments/<int:enrollment_id>")
    @staff_required
    def get_enrollment(enrollment_id: int):
        try:
            return ok(enrollments.get_enrollment_view(enrollment_id))
        except DomainError as exc:
            return error_response(exc)

    @app.put("/api/enrollments/<int:enrollment_id>/complete")
    @staff_required
    def complete(enrollment_id: int):
        data = request.get_json(silent=True) or {}
        try:
            enrollment = enrollments.complete_enrollment(
                enrollment_id,
                current_role=current_actor().role,
                grade=data.get("grade"),
                percentage=data.get("percentage"),
            )
        except DomainError as exc:
            return error_response(exc)
        return ok(enrollment, message="Enrollment completed")
