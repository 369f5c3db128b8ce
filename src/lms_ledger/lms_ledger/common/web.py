"""Flask helpers shared by the JSON controllers.

Authentication happens upstream: the identity layer stores `user_id` and
`role` in the session and this core trusts them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any

from flask import jsonify, session

from ..core.enums import Role
from ..core.exceptions import (
    AuthorizationError,
    DomainError,
    InvalidStateError,
    InvariantViolationError,
    NotFoundError,
    ValidationError,
)
from .serialization import as_json

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (InvalidStateError, 409),
    (InvariantViolationError, 422),
)


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: Role


def current_actor() -> Actor:
    return Actor(user_id=int(session["user_id"]), role=Role(session.get("role")))


def _unauthenticated():
    return jsonify({"success": False, "message": "Authentication required"}), 401


def _forbidden():
    return jsonify({"success": False, "message": "You do not have permission for this action"}), 403


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return _unauthenticated()
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    allowed = {r.value for r in roles}

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return _unauthenticated()
            if session.get("role") not in allowed:
                return _forbidden()
            return view(*args, **kwargs)

        return wrapper

    return decorator


admin_required = roles_required(Role.ADMIN)
staff_required = roles_required(Role.ADMIN, Role.TEACHER)


def status_for(exc: DomainError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 400


def error_response(exc: DomainError):
    status = status_for(exc)
    logger.info("Request rejected (%s): %s", type(exc).__name__, exc)
    return jsonify({"success": False, "message": str(exc)}), status


def ok(payload: Any = None, *, status: int = 200, **extra: Any):
    body: dict[str, Any] = {"success": True}
    if payload is not None:
        body["data"] = as_json(payload)
    body.update({k: as_json(v) for k, v in extra.items()})
    return jsonify(body), status
