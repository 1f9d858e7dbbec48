"""Board task blueprint: task CRUD and drag-and-drop reordering."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from flask import Blueprint, g, jsonify
from sqlalchemy.exc import SQLAlchemyError

from database import db
from forms import ReorderForm, TaskForm, TaskUpdateForm
from models.task import Task, TaskPriority, TaskStatus
from routes import bind_json_form, json_error, json_payload, require_csrf
from services.errors import RequestValidationError
from services.project_service import EDIT, VIEW, require_project
from services.reorder_service import reorder_task
from services.task_service import (
    build_board,
    create_task,
    delete_task,
    get_task_in_project,
    serialize_task,
    update_task,
)

tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/projects/<int:project_id>/tasks")


def _parse_timestamp(value: Optional[str], field: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logging.warning("Rejecting invalid %s value: %s", field, value)
        raise RequestValidationError(
            "Please correct the highlighted fields.", {field: ["Not a valid timestamp."]}
        )
    # Timestamps are stored naive in UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _commit_or_error(action: str):
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Database error while trying to %s", action, exc_info=True)
        return json_error("An internal error has occurred.", status=500)
    return None


@tasks_bp.route("", methods=["GET"])
def list_tasks(project_id: int):
    """Return the board: every column with its tasks in display order."""
    project = require_project(project_id, g.user, VIEW)
    tasks = Task.query.filter_by(project_id=project.id).all()
    return jsonify({"success": True, "project_id": project.id, "columns": build_board(tasks)})


@tasks_bp.route("", methods=["POST"])
def add_task(project_id: int):
    project = require_project(project_id, g.user, EDIT)
    payload = json_payload()
    require_csrf(payload)
    form = bind_json_form(TaskForm, payload)
    task = create_task(
        project,
        form.title.data.strip(),
        description=form.description.data or None,
        status=TaskStatus(form.status.data),
        priority=TaskPriority(form.priority.data),
        assignee_id=form.assignee_id.data,
    )
    error = _commit_or_error("add a task")
    if error:
        return error
    return jsonify({"success": True, "message": f'Task "{task.title}" added!', "task": serialize_task(task)}), 201


@tasks_bp.route("/<int:task_id>", methods=["GET"])
def get_task(project_id: int, task_id: int):
    project = require_project(project_id, g.user, VIEW)
    task = get_task_in_project(project, task_id)
    return jsonify({"success": True, "task": serialize_task(task)})


def _collect_changes(form: TaskUpdateForm, payload: dict[str, Any]) -> dict[str, Any]:
    """Return the edited fields, keeping only keys present in the payload."""
    changes: dict[str, Any] = {}
    for name in ("title", "description", "status", "priority", "order"):
        if name in payload:
            changes[name] = getattr(form, name).data
    if "assignee_id" in payload:
        changes["assignee_id"] = form.assignee_id.data if payload["assignee_id"] is not None else None
    if "title" in changes:
        title = (changes["title"] or "").strip()
        if not title:
            raise RequestValidationError(
                "Please correct the highlighted fields.", {"title": ["This field is required."]}
            )
        changes["title"] = title
    for name in ("status", "priority", "order"):
        if name in changes and changes[name] is None:
            raise RequestValidationError(
                "Please correct the highlighted fields.", {name: ["This field cannot be empty."]}
            )
    return changes


@tasks_bp.route("/<int:task_id>", methods=["PATCH"])
def edit_task(project_id: int, task_id: int):
    project = require_project(project_id, g.user, EDIT)
    task = get_task_in_project(project, task_id)
    payload = json_payload()
    require_csrf(payload)
    form = bind_json_form(TaskUpdateForm, payload)
    changes = _collect_changes(form, payload)
    previous_updated_at = _parse_timestamp(form.updated_at.data, "updated_at")
    update_task(task, changes, previous_updated_at=previous_updated_at)
    error = _commit_or_error("update a task")
    if error:
        return error
    return jsonify({"success": True, "message": f'Task "{task.title}" updated!', "task": serialize_task(task)})


@tasks_bp.route("/<int:task_id>", methods=["DELETE"])
def remove_task(project_id: int, task_id: int):
    project = require_project(project_id, g.user, EDIT)
    task = get_task_in_project(project, task_id)
    require_csrf(json_payload())
    title = task.title
    delete_task(task)
    error = _commit_or_error("delete a task")
    if error:
        return error
    return jsonify({"success": True, "message": f'Task "{title}" deleted!'})


@tasks_bp.route("/reorder", methods=["POST"])
def reorder(project_id: int):
    """Move a task to a column and position after a drag-and-drop.

    The body carries ``task_id``, ``status`` and either the client-computed
    ``order`` or the target ``index`` (both are usually sent). The response
    holds the task as stored so the client can reconcile its optimistic copy.
    """
    project = require_project(project_id, g.user, EDIT)
    payload = json_payload()
    require_csrf(payload)
    form = bind_json_form(ReorderForm, payload)
    task = reorder_task(
        project,
        form.task_id.data,
        TaskStatus(form.status.data),
        order=form.order.data,
        index=form.index.data,
    )
    return jsonify({"success": True, "task": serialize_task(task)})
