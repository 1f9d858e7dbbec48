"""Error types raised by the taskboard services."""

from __future__ import annotations

from typing import Optional


class TaskboardError(RuntimeError):
    """Base error carrying the HTTP status the API should answer with."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(TaskboardError):
    """Raised when a project, task, member or user does not exist."""

    status_code = 404


class PermissionDeniedError(TaskboardError):
    """Raised when the acting user lacks the capability for an operation."""

    status_code = 403

    def __init__(self, message: str = "You do not have permission to perform this action."):
        super().__init__(message)


class RequestValidationError(TaskboardError):
    """Raised for malformed input, before any transaction starts."""

    status_code = 400

    def __init__(self, message: str, errors: Optional[dict[str, list[str]]] = None):
        super().__init__(message)
        self.errors = errors or {}


class ConflictError(TaskboardError):
    """Raised when a request conflicts with existing data."""

    status_code = 400


class TransientStoreError(TaskboardError):
    """Raised when a transaction could not commit and was rolled back."""

    status_code = 503
