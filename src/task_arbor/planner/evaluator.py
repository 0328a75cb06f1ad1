# src/task_arbor/planner/evaluator.py

from __future__ import annotations

import logging

from ..core.errors import EvaluationError
from ..core.ports import LLMClient
from ..llm.structured import StructuredOutputError, request_structured
from ..tasks.task_models import Task, ledger_text
from .schemas import EvaluationReply
from .verdicts import EvaluationDecision, EvaluationStatus

logger = logging.getLogger(__name__)

EVALUATOR_SYSTEM_PROMPT = """
You are a task manager AI responsible for evaluating the state of a completed
or partially completed task.

You must return a decision in one of three categories:
- "complete": the task is done, and no further work is needed.
- "continue": the task is in progress, and additional steps or refinements are
  needed before marking it complete.
- "defer": the task is currently blocked, and should be returned to later
  (e.g. due to missing context, upstream dependency, or priority shift).
""".strip()


class LLMCompletionEvaluator:
    def __init__(self, llm: LLMClient) -> None:
        self._llm = llm

    async def evaluate(self, task: Task) -> EvaluationDecision:
        user_message = (
            f"Task description: {task.description}\n"
            f"Requirements for success: {task.requirements_for_success}\n"
            f"Work already done:\n{ledger_text(task)}\n\n"
            "What do you think?"
        )
        try:
            reply = await request_structured(
                self._llm,
                system_prompt=EVALUATOR_SYSTEM_PROMPT,
                user_message=user_message,
                schema=EvaluationReply,
            )
        except StructuredOutputError as e:
            raise EvaluationError(f"task {task.id}: invalid evaluator reply: {e}") from e
        except Exception as e:
            raise EvaluationError(f"task {task.id}: evaluator call failed: {e}") from e

        decision = EvaluationDecision(status=EvaluationStatus(reply.status), reason=reply.reason)
        logger.info("Task %s evaluated: %s (%s)", task.id, decision.status.value, decision.reason or "-")
        return decision
