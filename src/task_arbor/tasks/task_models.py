# src/task_arbor/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]

    @classmethod
    def from_raw(cls, raw: Any) -> Priority:
        if isinstance(raw, Priority):
            return raw
        try:
            return cls(str(raw or "").strip().lower())
        except ValueError:
            return cls.MEDIUM


_PRIORITY_RANK = {Priority.LOW: 0, Priority.MEDIUM: 1, Priority.HIGH: 2}


@dataclass(slots=True)
class WorkEntry:
    """One execution round of a task: an opaque summary of the work done."""

    work_summary: str


@dataclass(slots=True)
class Task:
    id: int
    parent_id: int  # 0 for a root task
    description: str
    priority: Priority
    requirements_for_success: str
    work_ledger: list[WorkEntry] = field(default_factory=list)
    completed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "parentId": self.parent_id,
            "description": self.description,
            "priority": self.priority.value,
            "work_ledger": [{"work_summary": w.work_summary} for w in self.work_ledger],
            "requirements_for_success": self.requirements_for_success,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Task:
        """
        Decode one persisted record. Raises ValueError when the record has no
        usable positive id; everything else falls back to safe defaults.
        """
        try:
            task_id = int(raw["id"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"task record without a valid id: {raw!r}") from e
        if task_id <= 0:
            raise ValueError(f"task id must be positive: {task_id}")

        try:
            parent_id = int(raw.get("parentId", raw.get("parent_id", 0)) or 0)
        except (TypeError, ValueError):
            parent_id = 0

        ledger_raw = raw.get("work_ledger") or []
        ledger: list[WorkEntry] = []
        if isinstance(ledger_raw, list):
            for entry in ledger_raw:
                if isinstance(entry, dict):
                    ledger.append(WorkEntry(work_summary=str(entry.get("work_summary", ""))))
                elif isinstance(entry, str):
                    ledger.append(WorkEntry(work_summary=entry))

        return cls(
            id=task_id,
            parent_id=max(0, parent_id),
            description=str(raw.get("description") or ""),
            priority=Priority.from_raw(raw.get("priority")),
            requirements_for_success=str(raw.get("requirements_for_success") or ""),
            work_ledger=ledger,
            completed=bool(raw.get("completed", False)),
        )


@dataclass(slots=True, frozen=True)
class SubtaskSpec:
    """A child task proposed by decomposition, before it has an id."""

    description: str
    requirements_for_success: str
    priority: Priority = Priority.MEDIUM


def ledger_text(task: Task) -> str:
    """The task's work history as one block of text (one summary per line)."""
    return "\n".join(w.work_summary for w in task.work_ledger)
