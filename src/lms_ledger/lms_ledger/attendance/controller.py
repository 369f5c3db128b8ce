from __future__ import annotations

from flask import request

from ..common.web import current_actor, error_response, login_required, ok, staff_required
from ..core.exceptions import DomainError


def register(app, container) -> None:
    attendance = container.attendance_service

    @app.get("/api/attendance/my/<int:course_id>")
    @login_required
    def my_attendance(course_id: int):
        return ok(attendance.get_student_history(course_id, current_actor().user_id))

    @app.get("/api/attendance/report/<int:course_id>")
    @staff_required
    def report(course_id: int):
        try:
            return ok(attendance.get_attendance_report(course_id, current_role=current_actor().role))
        except DomainError as exc:
            return error_response(exc)

    @app.get("/api/attendance/<int:course_id>/<day>")
    @staff_required
    def get_day(course_id: int, day: str):
        try:
            view = attendance.get_attendance_day(course_id, day, current_role=current_actor().role)
        except DomainError as exc:
            return error_response(exc)
        return ok(view.attendance, canEdit=view.can_edit)

    @app.post("/api/attendance")
    @staff_required
    def mark():
        data = request.get_json(silent=True) or {}
        actor = current_actor()
        try:
            sheet = attendance.mark_attendance(
                data.get("courseId"),
                data.get("date"),
                data.get("records") or [],
                marked_by=actor.user_id,
                current_role=actor.role,
            )
        except DomainError as exc:
            return error_response(exc)
        return ok(sheet, message="Attendance saved")
