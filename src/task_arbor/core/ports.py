# src/task_arbor/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the scheduler and planner services.

The scheduler depends on Protocols instead of concrete implementations, so the
LLM-backed services can be swapped for scripted fakes in tests.
"""

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..planner.verdicts import EvaluationDecision, Verdict
    from ..tasks.task_models import SubtaskSpec, Task

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.


class LLMClient(Protocol):
    """Streaming chat completion client (OpenAI-compatible)."""

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]: ...


class ArtifactRepo(Protocol):
    def list_paths(self) -> list[str]: ...
    def read_text(self, path: str) -> str: ...
    def write_text(self, path: str, content: str) -> object: ...
    def is_reserved(self, path: str) -> bool: ...


class TaskRepo(Protocol):
    def read_all(self) -> list[Task]: ...
    def get(self, task_id: int) -> Task | None: ...
    def add_subtasks(self, parent_id: int, specs: Sequence[SubtaskSpec]) -> list[Task]: ...
    def append_work(self, task_id: int, work_summary: str) -> Task: ...
    def mark_completed(self, task_id: int) -> Task: ...


class TaskClassifier(Protocol):
    async def classify(self, task: Task) -> Verdict: ...


class TaskExecutorPort(Protocol):
    async def execute(self, prompt: str, prior_work: str) -> str: ...


class CompletionEvaluatorPort(Protocol):
    async def evaluate(self, task: Task) -> EvaluationDecision: ...
