# src/task_arbor/planner/schemas.py

"""Wire schemas for the JSON replies of the planning services."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from ..tasks.task_models import Priority


class SubtaskItem(BaseModel):
    task_description: str = Field(min_length=1)
    requirements_for_success: str = ""
    priority: Priority = Priority.MEDIUM


class SubtasksReply(BaseModel):
    type: Literal["subtasks"]
    ready: Literal[True] = True
    subtasks: list[SubtaskItem]


class ExecutePromptBody(BaseModel):
    prompt: str = Field(min_length=1)


class ExecutePromptReply(BaseModel):
    type: Literal["executePrompt"]
    ready: Literal[True] = True
    execute_prompt: ExecutePromptBody = Field(alias="executePrompt")


class NotReadyReply(BaseModel):
    type: Literal["notReady"]
    ready: Literal[False] = False
    reason: str
    missing_dependencies: list[str] | None = Field(default=None, alias="missingDependencies")


TaskProcessReply = Annotated[
    SubtasksReply | ExecutePromptReply | NotReadyReply,
    Field(discriminator="type"),
]


class EvaluationReply(BaseModel):
    status: Literal["complete", "continue", "defer"]
    reason: str | None = None


class SaveLocationReply(BaseModel):
    path: str = Field(min_length=1)
    reason: str | None = None


class GeneratedArtifactReply(BaseModel):
    content: str
    summary_of_work_done: str = Field(min_length=1)


class RelevantFilesReply(BaseModel):
    files: list[str] = Field(default_factory=list)


class DecomposedSubtask(BaseModel):
    subtask: str = Field(min_length=1)
    priority: Priority = Priority.MEDIUM
    requirements_for_success: str = ""


class DecompositionReply(BaseModel):
    subtasks: list[DecomposedSubtask]
