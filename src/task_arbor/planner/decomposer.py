# src/task_arbor/planner/decomposer.py

from __future__ import annotations

import logging

from ..core.errors import ClassificationError
from ..core.ports import LLMClient
from ..llm.structured import StructuredOutputError, request_structured
from ..tasks.task_models import SubtaskSpec, Task
from .schemas import DecompositionReply

logger = logging.getLogger(__name__)

DECOMPOSER_SYSTEM_PROMPT = """
You are a task planning AI that specializes in decomposing complex tasks into
smaller, executable subtasks.

Break the task into a logically ordered list of subtasks that:
- are as atomic as possible (can be executed directly or further decomposed),
- include any dependencies or prerequisites,
- capture the purpose of the subtask clearly and concisely,
- are independently executable without the context of the parent task
  (include as much context as necessary in each description),
- are actionable, and together form a clear plan to achieve the parent task.
""".strip()


class TaskDecomposer:
    """Unconditional decomposition, used to seed or re-plan a task from the CLI."""

    def __init__(self, llm: LLMClient) -> None:
        self._llm = llm

    async def decompose(self, task: Task) -> list[SubtaskSpec]:
        user_message = (
            f"Task: {task.description}\n"
            f"Requirements for success: {task.requirements_for_success or '(none given)'}"
        )
        try:
            reply = await request_structured(
                self._llm,
                system_prompt=DECOMPOSER_SYSTEM_PROMPT,
                user_message=user_message,
                schema=DecompositionReply,
            )
        except StructuredOutputError as e:
            raise ClassificationError(f"task {task.id}: invalid decomposition reply: {e}") from e
        except Exception as e:
            raise ClassificationError(f"task {task.id}: decomposition call failed: {e}") from e

        specs = [
            SubtaskSpec(
                description=item.subtask.strip(),
                requirements_for_success=item.requirements_for_success.strip(),
                priority=item.priority,
            )
            for item in reply.subtasks
        ]
        logger.info("Task %s decomposed into %d subtasks", task.id, len(specs))
        return specs
