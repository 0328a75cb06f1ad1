# src/task_arbor/planner/classifier.py

from __future__ import annotations

import logging

from pydantic import TypeAdapter

from ..core.errors import ClassificationError
from ..core.ports import LLMClient
from ..llm.structured import StructuredOutputError, request_structured
from ..tasks.task_models import SubtaskSpec, Task, ledger_text
from .schemas import ExecutePromptReply, NotReadyReply, SubtasksReply, TaskProcessReply
from .verdicts import NeedsDecomposition, NotReady, ReadyToExecute, Verdict

logger = logging.getLogger(__name__)

CLASSIFIER_SYSTEM_PROMPT = """
You are an AI agent responsible for managing and preparing individual tasks.

Your job is to:
- Check if the task is ready to execute.
- If not, explain what's missing (type "notReady").
- If the task is too large, break it into subtasks (type "subtasks").
  Each subtask must be executable without the context of the parent task,
  so include all the context it needs in its description.
- If ready, generate a final prompt suitable for a language model to execute
  (type "executePrompt").

Take the work already done into account: do not repeat finished work.
""".strip()

_REPLY = TypeAdapter(TaskProcessReply)


def build_classifier_message(task: Task) -> str:
    return (
        f'Task description:\n"{task.description}"\n\n'
        f'Requirements for success:\n"{task.requirements_for_success}"\n\n'
        f'Work already done:\n"{ledger_text(task)}"\n\n'
        "Is this task ready? If so, generate the next steps to take."
    )


def reply_to_verdict(reply: SubtasksReply | ExecutePromptReply | NotReadyReply) -> Verdict:
    match reply:
        case NotReadyReply(reason=reason, missing_dependencies=missing):
            return NotReady(reason=reason, missing_dependencies=tuple(missing or ()))
        case SubtasksReply(subtasks=items):
            return NeedsDecomposition(
                subtasks=tuple(
                    SubtaskSpec(
                        description=item.task_description.strip(),
                        requirements_for_success=item.requirements_for_success.strip(),
                        priority=item.priority,
                    )
                    for item in items
                )
            )
        case ExecutePromptReply(execute_prompt=body):
            return ReadyToExecute(prompt=body.prompt)
    raise ClassificationError(f"unexpected classifier reply: {reply!r}")


class LLMTaskClassifier:
    """Decides per task: not ready, decompose into subtasks, or execute with a prompt."""

    def __init__(self, llm: LLMClient) -> None:
        self._llm = llm

    async def classify(self, task: Task) -> Verdict:
        try:
            reply = await request_structured(
                self._llm,
                system_prompt=CLASSIFIER_SYSTEM_PROMPT,
                user_message=build_classifier_message(task),
                schema=_REPLY,
            )
        except StructuredOutputError as e:
            raise ClassificationError(f"task {task.id}: invalid classifier reply: {e}") from e
        except Exception as e:
            raise ClassificationError(f"task {task.id}: classifier call failed: {e}") from e

        verdict = reply_to_verdict(reply)
        logger.info("Task %s classified as %s", task.id, type(verdict).__name__)
        return verdict
