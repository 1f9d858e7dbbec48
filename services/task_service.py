"""Helpers for creating, editing and presenting board tasks."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable

from database import db
from models.project import Project
from models.task import Task, TaskPriority, TaskStatus
from models.user import User
from services.errors import NotFoundError, RequestValidationError
from services.ordering import assign_order, task_sort_key
from services.project_service import user_can_view_project

EDITABLE_FIELDS = ("title", "description", "status", "priority", "assignee_id", "order")


def get_task_in_project(project: Project, task_id: int) -> Task:
    """Return the task when it exists and belongs to the project."""
    task = db.session.get(Task, task_id)
    if task is None or task.project_id != project.id:
        raise NotFoundError("Task not found.")
    return task


def partition_query(project_id: int, status: TaskStatus, *, exclude_task_id: int | None = None):
    """Query the tasks of one board column in display order."""
    query = Task.query.filter(Task.project_id == project_id, Task.status == status.value)
    if exclude_task_id is not None:
        query = query.filter(Task.id != exclude_task_id)
    return query.order_by(Task.order.asc(), Task.id.asc())


def column_orders(project_id: int, status: TaskStatus, *, exclude_task_id: int | None = None) -> list[float]:
    return [task.order for task in partition_query(project_id, status, exclude_task_id=exclude_task_id)]


def next_order_for_column(project_id: int, status: TaskStatus, *, exclude_task_id: int | None = None) -> float:
    """Return the order placing a task after the last one of the column."""
    orders = column_orders(project_id, status, exclude_task_id=exclude_task_id)
    return assign_order(orders, len(orders))


def _validate_assignee(project: Project, assignee_id: int | None) -> None:
    if assignee_id is None:
        return
    assignee = db.session.get(User, assignee_id)
    if not user_can_view_project(assignee, project):
        raise RequestValidationError(
            "Please correct the highlighted fields.",
            {"assignee_id": ["The assignee must be a member of the project."]},
        )


def create_task(
    project: Project,
    title: str,
    *,
    description: str | None = None,
    status: TaskStatus = TaskStatus.TODO,
    priority: TaskPriority = TaskPriority.MEDIUM,
    assignee_id: int | None = None,
) -> Task:
    """Create a task at the end of its column."""

    _validate_assignee(project, assignee_id)
    now = datetime.utcnow()
    task = Task(
        project_id=project.id,
        title=title,
        description=description,
        status=status.value,
        priority=priority.value,
        assignee_id=assignee_id,
        order=next_order_for_column(project.id, status),
        created_at=now,
        updated_at=now,
    )
    db.session.add(task)
    project.updated_at = now
    return task


def update_task(task: Task, changes: dict[str, Any], *, previous_updated_at: datetime | None = None) -> Task:
    """Apply an edit to a task.

    A status change without an explicit order places the task at the end of
    its new column. An order-only edit that carries the previous
    ``updated_at`` keeps that timestamp, every other edit bumps it.
    """
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise RequestValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

    if "assignee_id" in changes:
        _validate_assignee(task.project, changes["assignee_id"])

    for field in ("title", "description", "assignee_id"):
        if field in changes:
            setattr(task, field, changes[field])
    if "priority" in changes:
        task.priority = TaskPriority(changes["priority"]).value

    if "status" in changes:
        status = TaskStatus(changes["status"])
        if status != task.status_enum and "order" not in changes:
            task.order = next_order_for_column(task.project_id, status, exclude_task_id=task.id)
        task.status_enum = status
    if "order" in changes:
        task.order = float(changes["order"])

    if set(changes) == {"order"} and previous_updated_at is not None:
        task.updated_at = previous_updated_at
    else:
        task.touch()
    return task


def delete_task(task: Task) -> None:
    """Delete a task without renumbering the rest of its column."""
    db.session.delete(task)


def serialize_task(task: Task) -> dict[str, Any]:
    assignee = task.assignee
    return {
        "id": task.id,
        "project_id": task.project_id,
        "title": task.title,
        "description": task.description or "",
        "description_html": str(task.description_html),
        "status": task.status,
        "priority": task.priority,
        "order": task.order,
        "assignee_id": task.assignee_id,
        "assignee": {"id": assignee.id, "name": assignee.name, "email": assignee.email} if assignee else None,
        "created_at": task.created_at.isoformat() if task.created_at else None,
        "updated_at": task.updated_at.isoformat() if task.updated_at else None,
    }


def build_board(tasks: Iterable[Task]) -> dict[str, list[dict[str, Any]]]:
    """Group tasks into board columns, each sorted by order."""
    columns: dict[str, list[Task]] = {status.value: [] for status in TaskStatus}
    for task in tasks:
        columns.setdefault(task.status, []).append(task)
    return {
        status: [serialize_task(task) for task in sorted(items, key=task_sort_key)]
        for status, items in columns.items()
    }
