# src/task_arbor/planner/verdicts.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from ..tasks.task_models import SubtaskSpec


@dataclass(slots=True, frozen=True)
class NotReady:
    reason: str
    missing_dependencies: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class NeedsDecomposition:
    subtasks: tuple[SubtaskSpec, ...] = field(default_factory=tuple)


@dataclass(slots=True, frozen=True)
class ReadyToExecute:
    prompt: str


Verdict = NotReady | NeedsDecomposition | ReadyToExecute


class EvaluationStatus(StrEnum):
    COMPLETE = "complete"
    CONTINUE = "continue"
    DEFER = "defer"


@dataclass(slots=True, frozen=True)
class EvaluationDecision:
    status: EvaluationStatus
    reason: str | None = None
