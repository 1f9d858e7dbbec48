"""Shared helpers for route blueprints."""

from __future__ import annotations

import logging
from typing import Any, Type

from flask import current_app, g, jsonify, request
from flask_wtf.csrf import validate_csrf
from werkzeug.datastructures import MultiDict
from wtforms.validators import ValidationError

from forms import JsonForm
from services.errors import PermissionDeniedError, RequestValidationError, TaskboardError

__all__ = [
    "bind_json_form",
    "handle_taskboard_error",
    "json_error",
    "json_payload",
    "require_csrf",
    "validate_request_csrf",
]


def validate_request_csrf(token: str | None) -> tuple[bool, str | None]:
    """Validate CSRF tokens supplied with JSON payloads."""
    if not current_app.config.get("WTF_CSRF_ENABLED", True):
        return True, None
    if not token:
        return False, "The CSRF token is missing."
    try:
        validate_csrf(token)
    except ValidationError:
        return (
            False,
            "The CSRF token is invalid or has expired. Please refresh and try again.",
        )
    except Exception:
        return False, "The CSRF token is invalid."
    return True, None


def json_payload() -> dict[str, Any]:
    """Return the JSON body of the request, or an empty dict."""
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def require_csrf(payload: dict[str, Any]) -> None:
    """Raise PermissionDeniedError unless the request carries a valid CSRF token."""
    token = payload.get("csrf_token") or request.headers.get("X-CSRFToken")
    valid, message = validate_request_csrf(token)
    if not valid:
        raise PermissionDeniedError(message)


def bind_json_form(form_class: Type[JsonForm], payload: dict[str, Any]) -> JsonForm:
    """Bind a JSON payload to a form and validate it.

    Nested values and nulls are left out of the form data; routes read those
    straight from the payload when they matter.
    """
    formdata = MultiDict(
        {
            key: str(value)
            for key, value in payload.items()
            if key != "csrf_token" and value is not None and not isinstance(value, (dict, list))
        }
    )
    form = form_class(formdata=formdata)
    if not form.validate():
        raise RequestValidationError("Please correct the highlighted fields.", form.errors)
    return form


def json_error(message: str, *, status: int = 400, errors: dict | None = None):
    """Return a JSON error response."""
    payload: dict[str, Any] = {"success": False, "message": message}
    if errors:
        payload["errors"] = errors
    return jsonify(payload), status


def handle_taskboard_error(error: TaskboardError):
    """Translate service errors into JSON responses."""
    if error.status_code >= 500:
        logging.warning(
            "Request failed for user %s: %s", getattr(g.get("user"), "id", None), error.message
        )
    return json_error(error.message, status=error.status_code, errors=getattr(error, "errors", None))
