from __future__ import annotations

from flask import jsonify, request

from ..common.web import admin_required, current_actor, error_response, login_required
from ..core.exceptions import DomainError


def register(app, container) -> None:
    holidays = container.holiday_service

    @app.get("/api/settings/holidays")
    @login_required
    def get_holidays():
        return jsonify({"success": True, "holidayDays": sorted(holidays.get_holiday_days())})

    @app.put("/api/settings/holidays")
    @admin_required
    def put_holidays():
        data = request.get_json(silent=True) or {}
        actor = current_actor()
        try:
            days = holidays.set_holiday_days(
                data.get("holidayDays") or [],
                current_role=actor.role,
                updated_by=actor.user_id,
            )
        except DomainError as exc:
            return error_response(exc)
        return jsonify({"success": True, "holidayDays": sorted(days)})
