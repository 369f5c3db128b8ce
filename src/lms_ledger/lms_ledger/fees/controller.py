from __future__ import annotations

from flask import request

from ..common.validators import require_date
from ..common.web import admin_required, current_actor, error_response, login_required, ok
from ..core.enums import InstallmentStatus
from ..core.exceptions import DomainError, ValidationError
from .model import PlannedInstallment


def _planned(raw: dict, seq: int) -> PlannedInstallment:
    try:
        status = InstallmentStatus(raw.get("status") or InstallmentStatus.PENDING.value)
    except ValueError:
        raise ValidationError(f"Installment #{seq} has an invalid status")
    try:
        amount = int(raw.get("amount"))
    except (TypeError, ValueError):
        raise ValidationError(f"Installment #{seq} amount must be an integer")
    return PlannedInstallment(
        amount=amount,
        due_date=require_date(raw.get("dueDate"), f"Installment #{seq} dueDate"),
        status=status,
    )


def parse_schedule(payload) -> list[PlannedInstallment]:
    if not isinstance(payload, list):
        raise ValidationError("installments must be a list")
    return [_planned(raw or {}, seq) for seq, raw in enumerate(payload, start=1)]


def register(app, container) -> None:
    ledger = container.fee_ledger_service

    @app.get("/api/fees/my")
    @login_required
    def my_fees():
        actor = current_actor()
        return ok(ledger.list_fees_for_student(actor.user_id))

    @app.get("/api/fees/all")
    @admin_required
    def all_fees():
        try:
            return ok(ledger.list_all(current_role=current_actor().role))
        except DomainError as exc:
            return error_response(exc)

    @app.get("/api/fees/pending")
    @admin_required
    def pending_fees():
        try:
            return ok(ledger.list_pending_verification(current_role=current_actor().role))
        except DomainError as exc:
            return error_response(exc)

    @app.get("/api/fees/<int:fee_id>")
    @login_required
    def get_fee(fee_id: int):
        actor = current_actor()
        try:
            return ok(ledger.get_fee(fee_id, current_role=actor.role, actor_id=actor.user_id))
        except DomainError as exc:
            return error_response(exc)

    @app.post("/api/fees/<int:fee_id>/pay")
    @login_required
    def pay(fee_id: int):
        data = request.get_json(silent=True) or request.form
        actor = current_actor()
        try:
            inst = ledger.submit_payment(
                fee_id,
                int(data.get("installmentId") or 0),
                receipt_ref=data.get("receiptRef"),
                slip_id=data.get("slipId"),
                current_role=actor.role,
                actor_id=actor.user_id,
            )
        except DomainError as exc:
            return error_response(exc)
        except ValueError:
            return error_response(ValidationError("installmentId must be an integer"))
        return ok(inst, message="Payment submitted for verification")

    @app.put("/api/fees/<int:fee_id>/installments/<int:installment_id>/verify")
    @admin_required
    def verify(fee_id: int, installment_id: int):
        actor = current_actor()
        try:
            fee = ledger.verify_installment(
                fee_id, installment_id, verifier_id=actor.user_id, current_role=actor.role
            )
        except DomainError as exc:
            return error_response(exc)
        return ok(fee, message="Payment verified")

    @app.put("/api/fees/<int:fee_id>/installments/<int:installment_id>/reject")
    @admin_required
    def reject(fee_id: int, installment_id: int):
        try:
            inst = ledger.reject_installment(fee_id, installment_id, current_role=current_actor().role)
        except DomainError as exc:
            return error_response(exc)
        return ok(inst, message="Payment rejected")

    @app.post("/api/fees/<int:fee_id>/installments")
    @admin_required
    def set_plan(fee_id: int):
        data = request.get_json(silent=True) or {}
        actor = current_actor()
        try:
            fee = ledger.set_installment_plan(
                fee_id,
                parse_schedule(data.get("installments")),
                current_role=actor.role,
                actor_id=actor.user_id,
            )
        except DomainError as exc:
            return error_response(exc)
        return ok(fee, message="Installment plan updated")

    @app.delete("/api/fees/<int:fee_id>/installments/<int:installment_id>")
    @admin_required
    def delete_installment(fee_id: int, installment_id: int):
        try:
            fee = ledger.delete_installment(fee_id, installment_id, current_role=current_actor().role)
        except DomainError as exc:
            return error_response(exc)
        return ok(fee, message="Installment deleted")

    @app.post("/api/fees/check-overdue")
    @admin_required
    def check_overdue():
        try:
            result = container.scheduler.run_job("overdue_evaluation")
        except DomainError as exc:
            return error_response(exc)
        return ok(result)
