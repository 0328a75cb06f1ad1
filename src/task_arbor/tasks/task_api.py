# src/task_arbor/tasks/task_api.py

from __future__ import annotations

import logging

from .task_models import Priority, Task
from .task_store import TaskStore

logger = logging.getLogger(__name__)


def create_root_task(
    task_store: TaskStore,
    *,
    description: str,
    requirements_for_success: str = "",
    priority: Priority = Priority.HIGH,
    fresh: bool = False,
) -> Task:
    """
    Seed the plan with its single root goal.

    fresh=True drops any persisted tasks first; otherwise the store must be empty.
    """
    if fresh:
        task_store.write_all([])
        logger.info("Task store cleared for a fresh plan")
    elif task_store.count_tasks():
        raise ValueError("task store already holds a plan; resume it or start fresh")

    return task_store.add_task(
        description=description,
        requirements_for_success=requirements_for_success,
        priority=priority,
        parent_id=0,
    )


def format_task_tree(tasks: list[Task]) -> str:
    """Render tasks as an indented tree (children under their parent, store order)."""
    children: dict[int, list[Task]] = {}
    ids = {t.id for t in tasks}
    for t in tasks:
        # Orphans are shown at the top level rather than hidden.
        key = t.parent_id if t.parent_id in ids else 0
        children.setdefault(key, []).append(t)

    lines: list[str] = []
    seen: set[int] = set()

    def walk(parent_id: int, depth: int) -> None:
        for t in children.get(parent_id, []):
            if t.id in seen:
                continue
            seen.add(t.id)
            mark = "x" if t.completed else " "
            lines.append(
                f"{'  ' * depth}[{mark}] #{t.id} ({t.priority.value}, {len(t.work_ledger)} rounds) "
                f"{t.description}"
            )
            walk(t.id, depth + 1)

    walk(0, 0)
    return "\n".join(lines)
