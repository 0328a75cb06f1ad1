# src/task_arbor/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..artifacts.workspace import ArtifactStore
from ..config import Settings
from ..planner.classifier import LLMTaskClassifier
from ..planner.decomposer import TaskDecomposer
from ..planner.evaluator import LLMCompletionEvaluator
from ..planner.executor import TaskExecutor
from ..tasks.task_store import TaskStore


@dataclass(slots=True)
class AppState:
    """Everything a CLI command needs, wired once by cli.bootstrap."""

    settings: Settings
    artifacts: ArtifactStore
    task_store: TaskStore
    classifier: LLMTaskClassifier
    executor: TaskExecutor
    evaluator: LLMCompletionEvaluator
    decomposer: TaskDecomposer
