from __future__ import annotations

from ..common.web import admin_required, error_response, ok
from ..core.exceptions import DomainError


def register(app, container) -> None:
    scheduler = container.scheduler

    @app.get("/api/admin/jobs")
    @admin_required
    def list_jobs():
        return ok(scheduler.list_jobs(), running=scheduler.is_running)

    @app.post("/api/admin/jobs/<name>/run")
    @admin_required
    def run_job(name: str):
        try:
            result = scheduler.run_job(name)
        except DomainError as exc:
            return error_response(exc)
        return ok(result)
