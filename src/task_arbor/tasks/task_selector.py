# src/task_arbor/tasks/task_selector.py

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .task_models import Task


def select_candidates(tasks: Iterable[Task], stack: Sequence[int]) -> list[Task]:
    """
    Incomplete tasks eligible for the next scheduling step.

    With a non-empty stack only the children of the top entry qualify; otherwise
    every incomplete task does. Highest priority first; sorted() is stable, so
    ties keep store order.
    """
    if stack:
        top = stack[-1]
        pool = [t for t in tasks if t.parent_id == top and not t.completed]
    else:
        pool = [t for t in tasks if not t.completed]
    return sorted(pool, key=lambda t: t.priority.rank, reverse=True)


def has_open_children(tasks: Iterable[Task], task_id: int) -> bool:
    """True while task_id still has incomplete subtasks; such a parent waits for them."""
    return any(t.parent_id == task_id and not t.completed for t in tasks)
