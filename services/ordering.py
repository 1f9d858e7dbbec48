"""Fractional ordering of tasks within a board column.

Orders are floats. A task moved between two neighbors takes the midpoint of
their orders, so a move only ever rewrites the moved row. Repeated bisection
of the same gap eventually runs out of float precision; ``order_fits`` detects
that so the caller can renumber the column with ``spread_orders`` first.

These helpers are pure and shared by the server (reorder transaction) and the
board client (optimistic moves).
"""

from __future__ import annotations

from bisect import bisect_left
from typing import Sequence

ORDER_BASE = 1000.0
ORDER_GAP = 1000.0
# Smallest clearance kept between a new order and its neighbors
MIN_ORDER_GAP = 1e-6


def assign_order(neighbors: Sequence[float], index: int) -> float:
    """Return the order for a task inserted at ``index`` among ``neighbors``.

    ``neighbors`` are the ascending orders of the destination column without
    the moving task. ``index`` is the zero-based position the task should end
    up at.
    """
    if not neighbors:
        return ORDER_BASE
    if index <= 0:
        return neighbors[0] - ORDER_GAP
    if index >= len(neighbors):
        return neighbors[-1] + ORDER_GAP
    return (neighbors[index - 1] + neighbors[index]) / 2


def insertion_index(neighbors: Sequence[float], order: float) -> int:
    """Return the position an order value lands at among ``neighbors``."""
    return bisect_left(neighbors, order)


def order_fits(neighbors: Sequence[float], index: int, value: float) -> bool:
    """True when ``value`` sits strictly between the neighbors around ``index``.

    Values closer than ``MIN_ORDER_GAP`` to a neighbor are rejected so a
    collapsing gap is caught before two tasks share an order.
    """
    if index > 0 and value - neighbors[index - 1] < MIN_ORDER_GAP:
        return False
    if index < len(neighbors) and neighbors[index] - value < MIN_ORDER_GAP:
        return False
    return True


def spread_orders(count: int) -> list[float]:
    """Return ``count`` evenly spaced orders for a full column renumber."""
    return [ORDER_BASE + position * ORDER_GAP for position in range(count)]


def task_sort_key(task) -> tuple[float, int]:
    return (task.order, task.id)
