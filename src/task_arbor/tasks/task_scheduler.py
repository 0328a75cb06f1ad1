# src/task_arbor/tasks/task_scheduler.py

from __future__ import annotations

"""
Task scheduler.

Depth-first driver over the task tree:
- select candidates for the level on top of the stack (highest priority first),
- classify the head candidate: not ready / decompose / execute,
- decomposition persists the children and descends into them (push),
- execution appends to the work ledger, then the evaluator decides
  complete (advance), defer (advance) or continue (retry the same task),
- a level whose children are all completed is left (pop), so the parent
  becomes a candidate again one level up.
- a candidate that still has open subtasks is descended into, not classified,
  so a stored plan resumes below its parked parents.

One task is processed at a time. Per-task service failures are logged and
treated as "advance"; a store write failure aborts the run.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from ..core.errors import ClassificationError, EvaluationError, GenerationError, StoreWriteError
from ..core.ports import CompletionEvaluatorPort, TaskClassifier, TaskExecutorPort, TaskRepo
from ..planner.verdicts import EvaluationStatus, NeedsDecomposition, NotReady, ReadyToExecute
from .task_models import Task, ledger_text
from .task_selector import has_open_children, select_candidates

logger = logging.getLogger(__name__)


class Directive(StrEnum):
    ADVANCE = "advance"  # move on to the next candidate
    RETRY = "retry"  # reprocess the same task before any sibling


@dataclass(slots=True)
class RunResult:
    iterations: int
    finished: bool  # every reachable task is completed
    exhausted: bool  # stopped because the iteration budget ran out
    stack: list[int] = field(default_factory=list)


class TaskScheduler:
    def __init__(
        self,
        task_store: TaskRepo,
        classifier: TaskClassifier,
        executor: TaskExecutorPort,
        evaluator: CompletionEvaluatorPort,
    ) -> None:
        self._store = task_store
        self._classifier = classifier
        self._executor = executor
        self._evaluator = evaluator

    async def process_task(self, task: Task, stack: list[int]) -> Directive:
        """
        One scheduling step for task. May push task.id onto stack (decomposition).
        Service errors propagate to the caller.
        """
        verdict = await self._classifier.classify(task)

        match verdict:
            case NotReady(reason=reason, missing_dependencies=missing):
                logger.info("Task %s not ready: %s (missing=%s)", task.id, reason, list(missing))
                return Directive.ADVANCE

            case NeedsDecomposition(subtasks=specs):
                if not specs:
                    logger.warning("Task %s: decomposition returned no subtasks", task.id)
                    return Directive.ADVANCE
                children = self._store.add_subtasks(task.id, specs)
                stack.append(task.id)
                logger.info(
                    "Task %s decomposed into %s; descending (depth=%d)",
                    task.id,
                    [c.id for c in children],
                    len(stack),
                )
                return Directive.ADVANCE

            case ReadyToExecute(prompt=prompt):
                return await self._execute_and_evaluate(task, prompt)

        raise TypeError(f"unknown verdict: {verdict!r}")

    async def _execute_and_evaluate(self, task: Task, prompt: str) -> Directive:
        summary = await self._executor.execute(prompt, ledger_text(task))
        updated = self._store.append_work(task.id, summary)
        logger.info("Task %s work recorded (rounds=%d)", task.id, len(updated.work_ledger))

        decision = await self._evaluator.evaluate(updated)

        if decision.status == EvaluationStatus.COMPLETE:
            self._store.mark_completed(task.id)
            logger.info("Task %s -> completed", task.id)
            return Directive.ADVANCE
        if decision.status == EvaluationStatus.DEFER:
            logger.info("Task %s deferred: %s", task.id, decision.reason or "-")
            return Directive.ADVANCE
        logger.info("Task %s needs more work: %s", task.id, decision.reason or "-")
        return Directive.RETRY

    async def _step(self, task: Task, stack: list[int]) -> Directive:
        try:
            return await self.process_task(task, stack)
        except StoreWriteError:
            raise
        except (ClassificationError, GenerationError, EvaluationError) as e:
            logger.warning("Task %s failed this cycle: %s", task.id, e)
        except Exception:
            logger.exception("Task %s failed unexpectedly", task.id)
        return Directive.ADVANCE

    async def run(
        self,
        *,
        stack: Sequence[int] = (),
        max_iterations: int | None = None,
    ) -> RunResult:
        """
        Drive the plan until nothing is left or max_iterations steps were taken.

        Each pass snapshots the candidates of the current level and walks them in
        order; a descent (push) ends the pass so the next one starts on the new level.
        A candidate that already has open subtasks is not classified again: the
        scheduler descends into it, so a stored plan resumes below its parked parents.
        """
        stack_ = list(stack)
        iterations = 0

        while True:
            candidates = select_candidates(self._store.read_all(), stack_)
            if not candidates:
                if stack_:
                    parent_id = stack_.pop()
                    logger.info("All subtasks of task %s done; back to depth %d", parent_id, len(stack_))
                    continue
                logger.info("No incomplete tasks left (iterations=%d)", iterations)
                return RunResult(iterations=iterations, finished=True, exhausted=False, stack=stack_)

            depth = len(stack_)
            for candidate in candidates:
                directive = Directive.RETRY
                while directive is Directive.RETRY:
                    if max_iterations is not None and iterations >= max_iterations:
                        logger.warning("Iteration budget exhausted (%d)", max_iterations)
                        return RunResult(iterations=iterations, finished=False, exhausted=True, stack=stack_)

                    # Re-read: the ledger may have grown since the snapshot.
                    task = self._store.get(candidate.id)
                    if task is None or task.completed:
                        break
                    if has_open_children(self._store.read_all(), task.id):
                        # decomposed earlier (previous run or manual decompose): resume below it
                        stack_.append(task.id)
                        logger.info("Task %s has open subtasks; descending (depth=%d)", task.id, len(stack_))
                        break

                    iterations += 1
                    directive = await self._step(task, stack_)

                if len(stack_) != depth:
                    break

