# src/task_arbor/tasks/task_store.py

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Sequence

from ..artifacts.workspace import ArtifactStore
from ..core.errors import ArtifactNotFound, StoreReadError, StoreWriteError
from .task_models import Priority, SubtaskSpec, Task, WorkEntry

logger = logging.getLogger(__name__)

TaskMutator = Callable[[list[Task]], list[Task]]


class TaskStore:
    """
    JSON task store kept as one artifact (the task file) in the artifact root.

    The whole collection is the unit of persistence:
    - read_all() decodes every task; a missing or corrupt file reads as "no tasks"
    - write_all() replaces the file atomically (temp file + os.replace)
    - transaction(mutator) is the only mutation primitive: read -> mutate -> write

    Single-writer: two processes mutating the same file will lose updates.
    """

    def __init__(self, artifacts: ArtifactStore, path: str = "tasks.json") -> None:
        self._artifacts = artifacts
        self._path = ArtifactStore.normalize(path)
        logger.info("TaskStore ready file=%s", self._artifacts.resolve(self._path))

    # ---- low-level helpers ----

    def _load(self) -> list[Task]:
        try:
            raw = self._artifacts.read_text(self._path)
        except ArtifactNotFound:
            return []
        except (OSError, UnicodeDecodeError) as e:
            raise StoreReadError(f"cannot read {self._path}: {e}") from e

        if not raw.strip():
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreReadError(f"{self._path} is not valid JSON: {e}") from e

        if not isinstance(data, list):
            raise StoreReadError(f"{self._path} must hold a JSON array, got {type(data).__name__}")

        tasks: list[Task] = []
        seen: set[int] = set()
        for item in data:
            if not isinstance(item, dict):
                logger.warning("Skipping non-object task record: %r", item)
                continue
            try:
                task = Task.from_dict(item)
            except ValueError:
                logger.warning("Skipping invalid task record", exc_info=True)
                continue
            if task.id in seen:
                logger.warning("Skipping duplicate task id=%s", task.id)
                continue
            seen.add(task.id)
            tasks.append(task)
        return tasks

    @staticmethod
    def _check_ids(tasks: Sequence[Task]) -> None:
        seen: set[int] = set()
        for t in tasks:
            if t.id <= 0:
                raise ValueError(f"task id must be positive: {t.id}")
            if t.id in seen:
                raise ValueError(f"duplicate task id: {t.id}")
            seen.add(t.id)

    # ---- public API ----

    def read_all(self) -> list[Task]:
        try:
            return self._load()
        except StoreReadError:
            logger.exception("Task store unreadable; treating as empty")
            return []

    def write_all(self, tasks: Iterable[Task]) -> None:
        items = list(tasks)
        self._check_ids(items)
        payload = json.dumps([t.to_dict() for t in items], ensure_ascii=False, indent=2)
        try:
            self._artifacts.write_text(self._path, payload)
        except OSError as e:
            raise StoreWriteError(f"cannot write {self._path}: {e}") from e
        logger.debug("TaskStore wrote %d tasks", len(items))

    def transaction(self, mutator: TaskMutator) -> list[Task]:
        """Read all tasks, apply mutator, write the result back. Returns the written list."""
        tasks = self.read_all()
        updated = mutator(tasks)
        self.write_all(updated)
        return updated

    def count_tasks(self) -> int:
        return len(self.read_all())

    def get(self, task_id: int) -> Task | None:
        for t in self.read_all():
            if t.id == task_id:
                return t
        return None

    @staticmethod
    def next_id(tasks: Iterable[Task]) -> int:
        return max((t.id for t in tasks), default=0) + 1

    def add_task(
        self,
        *,
        description: str,
        requirements_for_success: str = "",
        priority: Priority = Priority.MEDIUM,
        parent_id: int = 0,
    ) -> Task:
        if not description or not description.strip():
            raise ValueError("description is required")

        created: list[Task] = []

        def mutate(tasks: list[Task]) -> list[Task]:
            if parent_id and not any(t.id == parent_id for t in tasks):
                raise KeyError(f"parent task {parent_id} does not exist")
            task = Task(
                id=self.next_id(tasks),
                parent_id=parent_id,
                description=description.strip(),
                priority=priority,
                requirements_for_success=requirements_for_success.strip(),
            )
            created.append(task)
            return [*tasks, task]

        self.transaction(mutate)
        logger.info("Task added id=%s parent=%s priority=%s", created[0].id, parent_id, priority.value)
        return created[0]

    def add_subtasks(self, parent_id: int, specs: Sequence[SubtaskSpec]) -> list[Task]:
        """Create children of parent_id with fresh ids, persisted in one write."""
        created: list[Task] = []

        def mutate(tasks: list[Task]) -> list[Task]:
            if not any(t.id == parent_id for t in tasks):
                raise KeyError(f"parent task {parent_id} does not exist")
            next_id = self.next_id(tasks)
            for offset, spec in enumerate(specs):
                created.append(
                    Task(
                        id=next_id + offset,
                        parent_id=parent_id,
                        description=spec.description,
                        priority=spec.priority,
                        requirements_for_success=spec.requirements_for_success,
                    )
                )
            return [*tasks, *created]

        self.transaction(mutate)
        logger.info(
            "Subtasks added parent=%s ids=%s",
            parent_id,
            [t.id for t in created],
        )
        return created

    def append_work(self, task_id: int, work_summary: str) -> Task:
        return self._update(task_id, lambda t: t.work_ledger.append(WorkEntry(work_summary=work_summary)))

    def mark_completed(self, task_id: int) -> Task:
        def complete(t: Task) -> None:
            t.completed = True

        return self._update(task_id, complete)

    def _update(self, task_id: int, fn: Callable[[Task], None]) -> Task:
        found: list[Task] = []

        def mutate(tasks: list[Task]) -> list[Task]:
            for t in tasks:
                if t.id == task_id:
                    fn(t)
                    found.append(t)
                    return tasks
            raise KeyError(f"task {task_id} does not exist")

        self.transaction(mutate)
        return found[0]
