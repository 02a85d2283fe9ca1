from __future__ import annotations

import logging
from datetime import date
from functools import wraps
from typing import Any, Iterable, Optional

from flask import Flask, jsonify, request, session
from werkzeug.exceptions import HTTPException

from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DependencyUnavailableError,
    DomainError,
    InvalidStateError,
    NotFoundError,
    TypeNotConfiguredError,
    ValidationError,
)
from .datetime_utils import parse_iso_date
from .pagination import Page

logger = logging.getLogger(__name__)

# Most specific first: DomainError subclasses map to a status in this order.
ERROR_STATUS: tuple[tuple[type, int, str], ...] = (
    (ValidationError, 400, "Bad Request"),
    (AuthenticationError, 401, "Unauthorized"),
    (AuthorizationError, 403, "Forbidden"),
    (NotFoundError, 404, "Not Found"),
    (InvalidStateError, 409, "Conflict"),
    (TypeNotConfiguredError, 500, "Internal Server Error"),
    (DependencyUnavailableError, 503, "Service Unavailable"),
)


def status_for(exc: DomainError) -> tuple[int, str]:
    for exc_type, status, label in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status, label
    return 400, "Bad Request"


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        status, label = status_for(exc)
        if status >= 500:
            logger.error("%s: %s", type(exc).__name__, exc, extra={"path": request.path, "status_code": status})
        return jsonify({"error": label, "message": str(exc)}), status

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.name, "message": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        logger.exception("Unhandled error", extra={"path": request.path, "method": request.method})
        return jsonify({"error": "Internal Server Error", "message": "Unexpected server error"}), 500


# ---- identity ----


def current_employee_id() -> int:
    employee_id = session.get("employee_id")
    if employee_id is None:
        raise AuthenticationError("Please sign in to continue")
    return int(employee_id)


def current_role() -> Role:
    try:
        return Role(session.get("role") or Role.EMPLOYEE.value)
    except ValueError:
        return Role.EMPLOYEE


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        current_employee_id()
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            current_employee_id()
            if current_role() not in roles:
                raise AuthorizationError("You do not have permission to perform this action")
            return view(*args, **kwargs)

        return wrapper

    return decorator


# ---- request parsing ----


def json_body() -> dict:
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def optional_date(value: Any, field_name: str) -> Optional[date]:
    if value in (None, ""):
        return None
    try:
        return parse_iso_date(str(value))
    except ValueError:
        raise ValidationError(f"{field_name} must be a date (YYYY-MM-DD)")


def required_date(value: Any, field_name: str) -> date:
    parsed = optional_date(value, field_name)
    if parsed is None:
        raise ValidationError(f"{field_name} is required")
    return parsed


def optional_int(value: Any, field_name: str) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")


def required_int(value: Any, field_name: str) -> int:
    parsed = optional_int(value, field_name)
    if parsed is None:
        raise ValidationError(f"{field_name} is required")
    return parsed


_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


def optional_bool(value: Any, field_name: str) -> Optional[bool]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValidationError(f"{field_name} must be true or false")


# ---- responses ----


def ok(data: Any = None, message: Optional[str] = None, status: int = 200):
    body: dict = {"data": data}
    if message:
        body["message"] = message
    return jsonify(body), status


def paged(page: Page):
    return jsonify({"data": [item.to_dict() for item in page.data], "pagination": page.pagination.to_dict()})


def to_dicts(items: Iterable) -> list[dict]:
    return [item.to_dict() for item in items]
