# tests/test_task_scheduler.py

from __future__ import annotations

import pytest

from task_arbor.core.errors import ClassificationError, EvaluationError, GenerationError, StoreWriteError
from task_arbor.planner.verdicts import (
    EvaluationStatus,
    NeedsDecomposition,
    NotReady,
    ReadyToExecute,
)
from task_arbor.tasks.task_models import Priority, SubtaskSpec, Task
from task_arbor.tasks.task_scheduler import Directive, TaskScheduler
from task_arbor.tasks.task_store import TaskStore

from .fakes import FakeClassifier, FakeEvaluator, FakeExecutor, prompt_for

Events = list[tuple[str, int]]


def _execute(task_id: int) -> ReadyToExecute:
    return ReadyToExecute(prompt=prompt_for(task_id))


def _scheduler(
    task_store: TaskStore,
    events: Events,
    *,
    verdicts=None,
    results=None,
    statuses=None,
) -> tuple[TaskScheduler, FakeClassifier, FakeExecutor, FakeEvaluator]:
    classifier = FakeClassifier(events, verdicts)
    executor = FakeExecutor(events, results)
    evaluator = FakeEvaluator(events, statuses)
    return TaskScheduler(task_store, classifier, executor, evaluator), classifier, executor, evaluator


def _root(task_store: TaskStore, description: str = "write a one-page summary of topic X") -> Task:
    return task_store.add_task(description=description, requirements_for_success="one page", priority=Priority.HIGH)


@pytest.mark.asyncio
async def test_decomposition_creates_children_and_descends(task_store: TaskStore, events: Events) -> None:
    root = _root(task_store)
    specs = (SubtaskSpec("research X", "notes exist"), SubtaskSpec("write summary", "one page", Priority.HIGH))
    scheduler, *_ = _scheduler(task_store, events, verdicts={root.id: [NeedsDecomposition(subtasks=specs)]})

    stack: list[int] = []
    directive = await scheduler.process_task(root, stack)

    assert directive is Directive.ADVANCE
    assert stack == [root.id]
    tasks = task_store.read_all()
    assert len(tasks) == 3
    stored_root, *children = tasks
    assert stored_root.completed is False
    assert [c.parent_id for c in children] == [root.id, root.id]
    assert [c.completed for c in children] == [False, False]
    assert len({t.id for t in tasks}) == 3


@pytest.mark.asyncio
async def test_not_ready_leaves_store_untouched(task_store: TaskStore, events: Events) -> None:
    root = _root(task_store)
    scheduler, *_ = _scheduler(task_store, events, verdicts={root.id: [NotReady("needs data", ("dataset",))]})
    before = task_store.read_all()

    stack: list[int] = []
    assert await scheduler.process_task(root, stack) is Directive.ADVANCE
    assert stack == []
    assert task_store.read_all() == before


@pytest.mark.asyncio
async def test_execute_then_complete(task_store: TaskStore, events: Events) -> None:
    root = _root(task_store)
    scheduler, _, executor, evaluator = _scheduler(task_store, events, verdicts={root.id: [_execute(root.id)]})

    directive = await scheduler.process_task(root, [])

    assert directive is Directive.ADVANCE
    stored = task_store.get(root.id)
    assert stored is not None
    assert len(stored.work_ledger) == 1
    assert stored.work_ledger[0].work_summary == f"done: {prompt_for(root.id)}"
    assert stored.completed is True
    # The evaluator sees the ledger including this round.
    assert evaluator.seen_ledgers == [1]
    assert executor.calls == [(prompt_for(root.id), "")]


@pytest.mark.asyncio
async def test_prior_work_is_passed_to_executor(task_store: TaskStore, events: Events) -> None:
    root = _root(task_store)
    task_store.append_work(root.id, "round one")
    task_store.append_work(root.id, "round two")
    scheduler, _, executor, _ = _scheduler(task_store, events, verdicts={root.id: [_execute(root.id)]})

    await scheduler.process_task(task_store.get(root.id), [])

    assert executor.calls[0][1] == "round one\nround two"


@pytest.mark.asyncio
async def test_defer_advances_without_completing(task_store: TaskStore, events: Events) -> None:
    root = _root(task_store)
    scheduler, *_ = _scheduler(
        task_store,
        events,
        verdicts={root.id: [_execute(root.id)]},
        statuses={root.id: [EvaluationStatus.DEFER]},
    )

    assert await scheduler.process_task(root, []) is Directive.ADVANCE
    stored = task_store.get(root.id)
    assert stored is not None
    assert stored.completed is False
    assert len(stored.work_ledger) == 1


@pytest.mark.asyncio
async def test_continue_requests_retry(task_store: TaskStore, events: Events) -> None:
    root = _root(task_store)
    scheduler, *_ = _scheduler(
        task_store,
        events,
        verdicts={root.id: [_execute(root.id)]},
        statuses={root.id: [EvaluationStatus.CONTINUE]},
    )
    assert await scheduler.process_task(root, []) is Directive.RETRY


@pytest.mark.asyncio
async def test_generation_failure_leaves_task_unchanged(task_store: TaskStore, events: Events) -> None:
    root = _root(task_store)
    scheduler, *_ = _scheduler(
        task_store,
        events,
        verdicts={root.id: [_execute(root.id)]},
        results={prompt_for(root.id): [GenerationError("no structured output")]},
    )

    with pytest.raises(GenerationError):
        await scheduler.process_task(root, [])

    stored = task_store.get(root.id)
    assert stored is not None
    assert stored.work_ledger == []
    assert stored.completed is False
    assert ("evaluate", root.id) not in events


@pytest.mark.asyncio
async def test_empty_decomposition_does_not_descend(task_store: TaskStore, events: Events) -> None:
    root = _root(task_store)
    scheduler, *_ = _scheduler(task_store, events, verdicts={root.id: [NeedsDecomposition(subtasks=())]})

    stack: list[int] = []
    assert await scheduler.process_task(root, stack) is Directive.ADVANCE
    assert stack == []
    assert task_store.count_tasks() == 1


@pytest.mark.asyncio
async def test_continue_reprocesses_same_task_before_sibling(task_store: TaskStore, events: Events) -> None:
    a = task_store.add_task(description="A", priority=Priority.HIGH)
    b = task_store.add_task(description="B", priority=Priority.LOW)
    scheduler, *_ = _scheduler(
        task_store,
        events,
        verdicts={a.id: [_execute(a.id)], b.id: [_execute(b.id)]},
        statuses={a.id: [EvaluationStatus.CONTINUE, EvaluationStatus.CONTINUE, EvaluationStatus.COMPLETE]},
    )

    result = await scheduler.run(max_iterations=10)

    assert result.finished is True
    classify_order = [task_id for kind, task_id in events if kind == "classify"]
    assert classify_order == [a.id, a.id, a.id, b.id]
    assert events.index(("classify", b.id)) > max(i for i, e in enumerate(events) if e == ("evaluate", a.id))
    stored_a = task_store.get(a.id)
    assert stored_a is not None and len(stored_a.work_ledger) == 3


@pytest.mark.asyncio
async def test_full_run_descends_pops_and_finishes_root(task_store: TaskStore, events: Events) -> None:
    root = _root(task_store)
    specs = (SubtaskSpec("low child", "", Priority.LOW), SubtaskSpec("high child", "", Priority.HIGH))
    scheduler, *_ = _scheduler(
        task_store,
        events,
        verdicts={
            root.id: [NeedsDecomposition(subtasks=specs), _execute(root.id)],
            2: [_execute(2)],
            3: [_execute(3)],
        },
    )

    result = await scheduler.run(max_iterations=20)

    assert result.finished is True
    assert result.exhausted is False
    assert result.stack == []
    assert [kind_id for kind_id in events if kind_id[0] == "classify"] == [
        ("classify", root.id),
        ("classify", 3),  # high priority child first
        ("classify", 2),
        ("classify", root.id),  # parent resumes after its children completed
    ]
    assert all(t.completed for t in task_store.read_all())


@pytest.mark.asyncio
async def test_completed_task_is_not_selected_again(task_store: TaskStore, events: Events) -> None:
    a = task_store.add_task(description="A", priority=Priority.HIGH)
    b = task_store.add_task(description="B", priority=Priority.MEDIUM)
    scheduler, *_ = _scheduler(
        task_store,
        events,
        verdicts={a.id: [_execute(a.id)], b.id: [NotReady("waiting"), _execute(b.id)]},
    )

    result = await scheduler.run(max_iterations=10)

    assert result.finished is True
    assert events.count(("classify", a.id)) == 1
    assert events.count(("classify", b.id)) == 2


@pytest.mark.asyncio
async def test_deferred_task_is_revisited_on_next_pass(task_store: TaskStore, events: Events) -> None:
    a = task_store.add_task(description="A", priority=Priority.HIGH)
    b = task_store.add_task(description="B", priority=Priority.LOW)
    scheduler, *_ = _scheduler(
        task_store,
        events,
        verdicts={a.id: [_execute(a.id)], b.id: [_execute(b.id)]},
        statuses={a.id: [EvaluationStatus.DEFER, EvaluationStatus.COMPLETE]},
    )

    result = await scheduler.run(max_iterations=10)

    assert result.finished is True
    assert [e for e in events if e[0] == "classify"] == [
        ("classify", a.id),
        ("classify", b.id),
        ("classify", a.id),
    ]


@pytest.mark.asyncio
async def test_iteration_budget_bounds_the_run(task_store: TaskStore, events: Events) -> None:
    root = _root(task_store)
    scheduler, *_ = _scheduler(task_store, events, verdicts={root.id: [NotReady("never ready")]})

    result = await scheduler.run(max_iterations=5)

    assert result.exhausted is True
    assert result.finished is False
    assert result.iterations == 5
    assert events == [("classify", root.id)] * 5


@pytest.mark.asyncio
async def test_per_task_failures_advance_to_sibling(task_store: TaskStore, events: Events) -> None:
    a = task_store.add_task(description="A", priority=Priority.HIGH)
    b = task_store.add_task(description="B", priority=Priority.LOW)
    scheduler, *_ = _scheduler(
        task_store,
        events,
        verdicts={a.id: [ClassificationError("bad shape")], b.id: [_execute(b.id)]},
    )

    result = await scheduler.run(max_iterations=3)

    assert events[:2] == [("classify", a.id), ("classify", b.id)]
    stored_b = task_store.get(b.id)
    assert stored_b is not None and stored_b.completed is True
    stored_a = task_store.get(a.id)
    assert stored_a is not None and stored_a.completed is False and stored_a.work_ledger == []
    assert result.exhausted is True


@pytest.mark.asyncio
async def test_store_write_failure_aborts_run(
    task_store: TaskStore, events: Events, monkeypatch: pytest.MonkeyPatch
) -> None:
    root = _root(task_store)
    scheduler, *_ = _scheduler(task_store, events, verdicts={root.id: [_execute(root.id)]})

    def broken_append(task_id: int, work_summary: str):
        raise StoreWriteError("read-only filesystem")

    monkeypatch.setattr(task_store, "append_work", broken_append)

    with pytest.raises(StoreWriteError):
        await scheduler.run(max_iterations=5)

    stored = task_store.get(root.id)
    assert stored is not None and stored.work_ledger == [] and stored.completed is False


@pytest.mark.asyncio
async def test_resume_with_existing_stack(task_store: TaskStore, events: Events) -> None:
    root = _root(task_store)
    (child,) = task_store.add_subtasks(root.id, [SubtaskSpec("child", "")])
    other = task_store.add_task(description="unrelated", priority=Priority.HIGH)
    scheduler, *_ = _scheduler(
        task_store,
        events,
        verdicts={child.id: [_execute(child.id)], root.id: [_execute(root.id)], other.id: [_execute(other.id)]},
    )

    result = await scheduler.run(stack=[root.id], max_iterations=10)

    assert result.finished is True
    assert events[0] == ("classify", child.id)


@pytest.mark.asyncio
async def test_evaluation_failure_keeps_task_open_and_advances(task_store: TaskStore, events: Events) -> None:
    a = task_store.add_task(description="A", priority=Priority.HIGH)
    b = task_store.add_task(description="B", priority=Priority.LOW)
    scheduler, *_ = _scheduler(
        task_store,
        events,
        verdicts={a.id: [_execute(a.id)], b.id: [_execute(b.id)]},
        statuses={a.id: [EvaluationError("reply unusable")]},
    )

    result = await scheduler.run(max_iterations=2)

    assert events == [
        ("classify", a.id),
        ("execute", a.id),
        ("evaluate", a.id),
        ("classify", b.id),
        ("execute", b.id),
        ("evaluate", b.id),
    ]
    stored_a = task_store.get(a.id)
    assert stored_a is not None
    assert stored_a.completed is False
    assert [w.work_summary for w in stored_a.work_ledger] == [f"done: {prompt_for(a.id)}"]
    stored_b = task_store.get(b.id)
    assert stored_b is not None and stored_b.completed is True
    assert result.exhausted is True


@pytest.mark.asyncio
async def test_rerun_resumes_below_decomposed_parent(task_store: TaskStore, events: Events) -> None:
    root = _root(task_store)
    specs = (SubtaskSpec("research X", "notes exist", Priority.HIGH), SubtaskSpec("write summary", "one page"))
    # children get max+1 ids, so the first one is root.id + 1
    verdicts = {root.id: [NeedsDecomposition(subtasks=specs)], root.id + 1: [_execute(root.id + 1)]}
    first, *_ = _scheduler(task_store, events, verdicts=verdicts)

    result = await first.run(max_iterations=2)
    assert result.stack == [root.id]
    research, write = task_store.read_all()[1:]
    assert research.completed is True and write.completed is False

    events.clear()
    second, *_ = _scheduler(task_store, events, verdicts=verdicts)
    result = await second.run(max_iterations=1)

    # The root keeps its decomposition verdict; classifying it again would duplicate the subtree.
    assert events == [("classify", write.id)]
    assert [t.id for t in task_store.read_all()] == [root.id, research.id, write.id]
    assert result.stack == [root.id]


@pytest.mark.asyncio
async def test_run_descends_into_manually_decomposed_task(task_store: TaskStore, events: Events) -> None:
    root = _root(task_store)
    (step,) = task_store.add_subtasks(root.id, [SubtaskSpec("step", "")])
    (detail,) = task_store.add_subtasks(step.id, [SubtaskSpec("detail", "")])
    scheduler, *_ = _scheduler(
        task_store,
        events,
        verdicts={detail.id: [_execute(detail.id)], step.id: [_execute(step.id)], root.id: [_execute(root.id)]},
    )

    result = await scheduler.run()

    assert result.finished is True
    assert [e for e in events if e[0] == "classify"] == [
        ("classify", detail.id),
        ("classify", step.id),
        ("classify", root.id),
    ]
    assert all(t.completed for t in task_store.read_all())
