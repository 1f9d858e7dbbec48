"""Transactional moves of tasks between and within board columns.

A move only rewrites the moved row: its new order is computed against the
current rows of the destination column, never trusted blindly from the
client. Gaps left in the source column are harmless and stay in place.

When the gap the task should land in is too narrow to hold another float
(``order_fits`` fails) the destination column is renumbered with evenly
spaced orders first. The renumber and the move share one transaction, so a
failure anywhere rolls every row back to its previous order.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from database import db
from models.project import Project
from models.task import Task, TaskStatus
from services.errors import NotFoundError, TransientStoreError
from services.ordering import assign_order, insertion_index, order_fits, spread_orders
from services.task_service import partition_query


def _lock_partition(project_id: int, status: TaskStatus, moving_task_id: int) -> list[Task]:
    # FOR UPDATE serializes concurrent moves into the same column on
    # databases that support it; SQLite ignores it and locks the file instead.
    return partition_query(project_id, status, exclude_task_id=moving_task_id).with_for_update().all()


def _renumber_partition(neighbors: list[Task]) -> list[float]:
    orders = spread_orders(len(neighbors))
    for task, order in zip(neighbors, orders):
        task.order = order
    db.session.flush()
    return orders


def _resolve_order(
    neighbors: list[Task],
    requested_order: Optional[float],
    index: Optional[int],
) -> float:
    orders = [task.order for task in neighbors]
    if index is None:
        index = insertion_index(orders, requested_order)
        candidate = requested_order
    else:
        index = max(0, min(index, len(orders)))
        candidate = assign_order(orders, index)

    if order_fits(orders, index, candidate):
        return candidate

    logging.info(
        "Renumbering %d tasks before inserting at position %d; order gap exhausted",
        len(neighbors),
        index,
    )
    orders = _renumber_partition(neighbors)
    return assign_order(orders, index)


def _write_task_position(task: Task, status: TaskStatus, order: float) -> None:
    task.status_enum = status
    task.order = order
    db.session.flush()


def reorder_task(
    project: Project,
    task_id: int,
    status: TaskStatus | str,
    *,
    order: Optional[float] = None,
    index: Optional[int] = None,
) -> Task:
    """Move a task to ``status`` at the given position and commit.

    The position is either a zero-based ``index`` in the destination column
    (preferred, recomputed from the stored rows) or the ``order`` value the
    client computed. ``updated_at`` is left untouched since a reorder is not
    an edit of the task itself.

    Raises NotFoundError without writing anything when the task is missing
    or belongs to another project, and TransientStoreError after rolling
    back when the transaction fails.
    """
    if order is None and index is None:
        raise ValueError("Either order or index is required")
    target_status = TaskStatus(status)

    task = db.session.get(Task, task_id)
    if task is None or task.project_id != project.id:
        raise NotFoundError("Task not found.")

    previous_status = task.status
    try:
        neighbors = _lock_partition(project.id, target_status, task.id)
        new_order = _resolve_order(neighbors, order, index)
        _write_task_position(task, target_status, new_order)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logging.error("Unable to reorder task %s: %s", task_id, exc, exc_info=True)
        raise TransientStoreError("The task could not be moved. Please try again.") from exc

    logging.debug(
        "Moved task %s from %s to %s at order %s",
        task.id,
        previous_status,
        target_status.value,
        new_order,
    )
    return task
