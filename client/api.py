"""Blocking client for the taskboard JSON API."""

from __future__ import annotations

import json
import logging
from http.client import RemoteDisconnected
from http.cookiejar import CookieJar
from typing import Any, Dict, List, Optional, Tuple
from urllib import error as urllib_error, request as urllib_request

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 20


class ApiError(RuntimeError):
    """Raised when an API call fails or the server cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None, errors: Optional[dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.errors = errors or {}


class TaskboardApi:
    """Session-cookie client; keeps the CSRF token returned by the server."""

    def __init__(self, base_url: str, *, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.csrf_token: Optional[str] = None
        self._opener = urllib_request.build_opener(urllib_request.HTTPCookieProcessor(CookieJar()))

    def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Tuple[int, Any]:
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.csrf_token:
            headers["X-CSRFToken"] = self.csrf_token
        data = json.dumps(payload).encode("utf-8") if payload is not None else None

        request = urllib_request.Request(url, data=data, headers=headers, method=method)
        try:
            with self._opener.open(request, timeout=self.timeout) as response:
                status = response.getcode()
                raw = response.read()
        except urllib_error.HTTPError as error:
            status = error.code
            raw = error.read()
        except RemoteDisconnected as error:
            raise ApiError("The server closed the connection unexpectedly.") from error
        except (urllib_error.URLError, TimeoutError) as error:
            raise ApiError("Unable to reach the taskboard server.") from error

        text = raw.decode("utf-8") if raw else ""
        try:
            body = json.loads(text) if text else {}
        except json.JSONDecodeError:
            body = {}
        if status >= 400:
            logger.warning("Taskboard API call failed: %s %s -> %s", method, url, status)
            message = body.get("message") if isinstance(body, dict) else None
            errors = body.get("errors") if isinstance(body, dict) else None
            raise ApiError(message or f"Request failed with status {status}", status, errors)
        return status, body

    def _remember_csrf(self, body: Dict[str, Any]) -> None:
        token = body.get("csrf_token")
        if token:
            self.csrf_token = token

    def fetch_csrf_token(self) -> str:
        _, body = self._request("GET", "/api/auth/csrf")
        self._remember_csrf(body)
        return self.csrf_token

    def login(self, email: str, password: str) -> Dict[str, Any]:
        if not self.csrf_token:
            self.fetch_csrf_token()
        _, body = self._request("POST", "/api/auth/login", {"email": email, "password": password})
        self._remember_csrf(body)
        return body["user"]

    def logout(self) -> None:
        self._request("POST", "/api/auth/logout", {})
        self.csrf_token = None

    def list_tasks(self, project_id: int) -> List[Dict[str, Any]]:
        """Return every task of the project, column by column."""
        _, body = self._request("GET", f"/api/projects/{project_id}/tasks")
        columns = body.get("columns", {})
        return [task for tasks in columns.values() for task in tasks]

    def create_task(self, project_id: int, title: str, **fields: Any) -> Dict[str, Any]:
        _, body = self._request("POST", f"/api/projects/{project_id}/tasks", {"title": title, **fields})
        return body["task"]

    def reorder_task(
        self,
        project_id: int,
        task_id: int,
        status: str,
        order: float,
        index: Optional[int] = None,
        updated_at: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Send a drag-and-drop move; return the task as stored by the server."""
        payload: Dict[str, Any] = {"task_id": task_id, "status": status, "order": order}
        if index is not None:
            payload["index"] = index
        if updated_at:
            payload["updated_at"] = updated_at
        _, body = self._request("POST", f"/api/projects/{project_id}/tasks/reorder", payload)
        return body["task"]

    def delete_task(self, project_id: int, task_id: int) -> None:
        self._request("DELETE", f"/api/projects/{project_id}/tasks/{task_id}", {})
