"""Optimistic board state for a drag-and-drop client.

A move is applied to the local task list at once, sent to the server, then
either confirmed with the record the server returns or rolled back to the
copy taken before the move. All bookkeeping happens on one asyncio event
loop; blocking API calls run in a worker thread.

Moves are tracked per task id. A new move on a task whose previous move is
still waiting for the server supersedes it: the older response is then only
used to refresh the rollback target, never to overwrite the newer local
state. When the newer move fails instead, a late confirmation of the older
one is adopted since it is the last state the server accepted.

Deleting is deferred: the task disappears from the board and a timer is
armed on the loop. ``cancel_delete`` before the timer fires restores the
task without any request being sent. Both the timer and the cancel claim the
same registry entry, so only one of them can win.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from client.api import ApiError
from models.task import TaskStatus
from services.ordering import assign_order, task_sort_key

logger = logging.getLogger(__name__)

DEFAULT_UNDO_SECONDS = 5.0


class MoveState(Enum):
    IDLE = "idle"
    OPTIMISTIC = "optimistic"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"
    SUPERSEDED = "superseded"


class DeletionState(Enum):
    PENDING = "pending"
    CANCELLED = "cancelled"
    COMMITTED = "committed"
    DELETED = "deleted"
    FAILED = "failed"


@dataclass(frozen=True)
class TaskRecord:
    """Client-side copy of a task as the server last described it."""

    id: int
    project_id: int
    title: str
    status: str
    order: float
    updated_at: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "TaskRecord":
        return cls(
            id=payload["id"],
            project_id=payload["project_id"],
            title=payload.get("title", ""),
            status=payload["status"],
            order=float(payload["order"]),
            updated_at=payload.get("updated_at"),
            data=dict(payload),
        )


@dataclass
class PendingMove:
    token: int
    task_id: int
    rollback: TaskRecord
    status: str
    order: float
    state: MoveState = MoveState.OPTIMISTIC


@dataclass
class PendingDeletion:
    token: int
    task_id: int
    snapshot: TaskRecord
    handle: Optional[asyncio.TimerHandle] = None
    request: Optional[asyncio.Task] = None
    state: DeletionState = DeletionState.PENDING


class BoardState:
    """Task collection of one project board with optimistic moves."""

    def __init__(
        self,
        api,
        project_id: int,
        *,
        notify: Optional[Callable[[str], None]] = None,
        undo_seconds: float = DEFAULT_UNDO_SECONDS,
    ):
        self._api = api
        self.project_id = project_id
        self._notify = notify
        self.undo_seconds = undo_seconds
        self._tasks: Dict[int, TaskRecord] = {}
        self._moves: Dict[int, PendingMove] = {}
        self._deletions: Dict[int, PendingDeletion] = {}
        # Token of the newest move the server confirmed, per task
        self._confirmed: Dict[int, int] = {}
        self._deleted_ids: set[int] = set()
        self._tokens = itertools.count(1)

    # Loading and views
    # ------------------------------
    def load(self, records: Iterable[Dict[str, Any]]) -> None:
        """Replace the local tasks with server records.

        Tasks waiting for a delete stay hidden; the fresh record becomes
        their undo snapshot. Tasks already deleted are skipped. Tasks with a move in flight keep their
        optimistic column and order.
        """
        tasks: Dict[int, TaskRecord] = {}
        for payload in records:
            record = TaskRecord.from_dict(payload)
            if record.id in self._deleted_ids:
                continue
            deletion = self._deletions.get(record.id)
            if deletion is not None:
                deletion.snapshot = record
                continue
            move = self._moves.get(record.id)
            if move is not None:
                record = replace(record, status=move.status, order=move.order)
            tasks[record.id] = record
        self._tasks = tasks

    async def refresh(self) -> None:
        records = await asyncio.to_thread(self._api.list_tasks, self.project_id)
        self.load(records)

    def get(self, task_id: int) -> Optional[TaskRecord]:
        return self._tasks.get(task_id)

    def tasks(self) -> List[TaskRecord]:
        return sorted(self._tasks.values(), key=lambda record: (record.status, *task_sort_key(record)))

    def column(self, status: TaskStatus | str) -> List[TaskRecord]:
        status = TaskStatus(status).value
        return sorted(
            (record for record in self._tasks.values() if record.status == status),
            key=task_sort_key,
        )

    def pending_move(self, task_id: int) -> Optional[PendingMove]:
        return self._moves.get(task_id)

    def pending_deletion(self, task_id: int) -> Optional[PendingDeletion]:
        return self._deletions.get(task_id)

    def _surface_error(self, message: str) -> None:
        if self._notify is not None:
            self._notify(message)

    # Moves
    # ------------------------------
    async def move_task(self, task_id: int, status: TaskStatus | str, index: int) -> Optional[PendingMove]:
        """Move a task to ``index`` of column ``status``.

        Returns the move record once the server answered, or None when the
        drop did not change anything.
        """
        current = self._tasks.get(task_id)
        if current is None:
            raise KeyError(task_id)
        status = TaskStatus(status).value

        if current.status == status:
            position = [record.id for record in self.column(status)].index(task_id)
            if position == index:
                return None

        neighbors = [record.order for record in self.column(status) if record.id != task_id]
        new_order = assign_order(neighbors, index)

        earlier = self._moves.get(task_id)
        if earlier is not None:
            earlier.state = MoveState.SUPERSEDED
        move = PendingMove(
            token=next(self._tokens),
            task_id=task_id,
            rollback=earlier.rollback if earlier is not None else current,
            status=status,
            order=new_order,
        )
        self._moves[task_id] = move
        self._tasks[task_id] = replace(current, status=status, order=new_order)

        try:
            payload = await asyncio.to_thread(
                self._api.reorder_task,
                self.project_id,
                task_id,
                status,
                new_order,
                index,
                move.rollback.updated_at,
            )
        except ApiError as error:
            self._rollback(move, error)
        else:
            self._confirm(move, TaskRecord.from_dict(payload))
        return move

    def _is_current(self, move: PendingMove) -> bool:
        return self._moves.get(move.task_id) is move

    def _confirm(self, move: PendingMove, record: TaskRecord) -> None:
        if move.token < self._confirmed.get(move.task_id, 0):
            logger.debug("Ignoring stale confirmation for task %s", move.task_id)
            return
        self._confirmed[move.task_id] = move.token
        latest = self._moves.get(move.task_id)
        if latest is not None and latest is not move:
            latest.rollback = record
            logger.debug("Superseded confirmation for task %s kept as rollback target", move.task_id)
            return
        if latest is move:
            del self._moves[move.task_id]
            move.state = MoveState.CONFIRMED
        # Otherwise every later move was rolled back and this is what the server holds
        self._store(move.task_id, record)

    def _store(self, task_id: int, record: TaskRecord) -> None:
        deletion = self._deletions.get(task_id)
        if deletion is not None:
            deletion.snapshot = record
        elif task_id in self._tasks:
            self._tasks[task_id] = record

    def _rollback(self, move: PendingMove, error: ApiError) -> None:
        if not self._is_current(move):
            logger.debug("Ignoring superseded failure for task %s: %s", move.task_id, error)
            return
        del self._moves[move.task_id]
        move.state = MoveState.ROLLED_BACK
        self._store(move.task_id, move.rollback)
        logger.warning("Move of task %s rolled back: %s", move.task_id, error)
        self._surface_error(f"Unable to move the task: {error}")

    # Deferred deletion
    # ------------------------------
    def schedule_delete(self, task_id: int, *, delay: Optional[float] = None) -> PendingDeletion:
        """Hide a task and send the delete request once the undo window ends."""
        existing = self._deletions.get(task_id)
        if existing is not None:
            return existing
        snapshot = self._tasks.pop(task_id, None)
        if snapshot is None:
            raise KeyError(task_id)

        loop = asyncio.get_running_loop()
        deletion = PendingDeletion(token=next(self._tokens), task_id=task_id, snapshot=snapshot)
        self._deletions[task_id] = deletion
        deletion.handle = loop.call_later(
            self.undo_seconds if delay is None else delay,
            self._fire_delete,
            deletion,
        )
        return deletion

    def cancel_delete(self, task_id: int) -> bool:
        """Restore a task whose deletion has not been sent yet."""
        deletion = self._deletions.get(task_id)
        if deletion is None or deletion.state is not DeletionState.PENDING:
            return False
        del self._deletions[task_id]
        deletion.state = DeletionState.CANCELLED
        if deletion.handle is not None:
            deletion.handle.cancel()
        self._tasks[task_id] = deletion.snapshot
        return True

    def _fire_delete(self, deletion: PendingDeletion) -> None:
        if self._deletions.get(deletion.task_id) is not deletion or deletion.state is not DeletionState.PENDING:
            return
        deletion.state = DeletionState.COMMITTED
        deletion.request = asyncio.ensure_future(self._send_delete(deletion))

    async def _send_delete(self, deletion: PendingDeletion) -> None:
        try:
            await asyncio.to_thread(self._api.delete_task, self.project_id, deletion.task_id)
        except ApiError as error:
            deletion.state = DeletionState.FAILED
            self._deletions.pop(deletion.task_id, None)
            self._tasks[deletion.task_id] = deletion.snapshot
            logger.warning("Delete of task %s failed: %s", deletion.task_id, error)
            self._surface_error(f"Unable to delete the task: {error}")
            return
        deletion.state = DeletionState.DELETED
        self._deletions.pop(deletion.task_id, None)
        self._moves.pop(deletion.task_id, None)
        self._tasks.pop(deletion.task_id, None)
        self._deleted_ids.add(deletion.task_id)

    async def wait_for_deletions(self) -> None:
        """Wait until every committed delete request has been answered."""
        requests = [deletion.request for deletion in self._deletions.values() if deletion.request is not None]
        if requests:
            await asyncio.gather(*requests)
