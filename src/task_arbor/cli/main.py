# src/task_arbor/cli/main.py

"""
CLI entrypoint.

  task-arbor run [GOAL] [--requirements TEXT] [--max-iterations N] [--fresh]
  task-arbor status
  task-arbor decompose TASK_ID

Exit status: 0 on success (including an exhausted iteration budget),
1 on fatal errors (store write failure, missing configuration, unusable work dir),
2 on usage errors.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

from ..config import Settings, get_settings
from ..core.errors import ClassificationError, StoreWriteError
from ..logging_setup import setup_logging
from ..tasks.task_api import create_root_task, format_task_tree
from ..tasks.task_models import Priority
from ..tasks.task_scheduler import TaskScheduler
from ..tasks.task_store import TaskStore
from .bootstrap import create_artifact_store, create_initial_state

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="task-arbor",
        description="Recursive task planner: decompose a goal, execute ready tasks, resume later.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="run (or resume) the plan")
    run.add_argument("goal", nargs="?", help="root goal; required when no plan is stored")
    run.add_argument("--requirements", default="", help="acceptance criteria for the root goal")
    run.add_argument("--max-iterations", type=int, default=None, help="scheduling step budget")
    run.add_argument("--fresh", action="store_true", help="discard the stored plan and start over")

    sub.add_parser("status", help="print the task tree")

    dec = sub.add_parser("decompose", help="split one task into subtasks right away")
    dec.add_argument("task_id", type=int)

    return parser


def _configure_logging(settings: Settings) -> None:
    level_name = str(settings.log_level).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    log_file = setup_logging(log_dir=settings.log_dir, console_level=console_level)

    # keep noisy libs readable
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logger.debug("Logging to %s", log_file)


def cmd_status(settings: Settings) -> int:
    store = TaskStore(create_artifact_store(settings), settings.tasks_file)
    tasks = store.read_all()
    if not tasks:
        print("No tasks stored.")
        return EXIT_OK
    done = sum(1 for t in tasks if t.completed)
    print(format_task_tree(tasks))
    print(f"\n{done}/{len(tasks)} tasks completed")
    return EXIT_OK


async def cmd_run(settings: Settings, args: argparse.Namespace) -> int:
    state = create_initial_state(settings=settings)

    if args.fresh or not state.task_store.read_all():
        if not args.goal:
            print("No stored plan: pass a GOAL to start one.", file=sys.stderr)
            return EXIT_USAGE
        root = create_root_task(
            state.task_store,
            description=args.goal,
            requirements_for_success=args.requirements,
            priority=Priority.HIGH,
            fresh=args.fresh,
        )
        logger.info("Started plan with root task %s: %s", root.id, root.description)
    elif args.goal:
        logger.warning("A plan is already stored; ignoring GOAL (use --fresh to replace it)")

    budget = args.max_iterations if args.max_iterations is not None else settings.max_iterations
    scheduler = TaskScheduler(state.task_store, state.classifier, state.executor, state.evaluator)
    result = await scheduler.run(max_iterations=max(1, budget))

    if result.finished:
        logger.info("Plan finished after %d steps", result.iterations)
    else:
        logger.info("Stopped after %d steps; run again to resume", result.iterations)
    return EXIT_OK


async def cmd_decompose(settings: Settings, task_id: int) -> int:
    state = create_initial_state(settings=settings)
    task = state.task_store.get(task_id)
    if task is None:
        print(f"Task {task_id} not found.", file=sys.stderr)
        return EXIT_USAGE
    if task.completed:
        print(f"Task {task_id} is already completed.", file=sys.stderr)
        return EXIT_USAGE

    try:
        specs = await state.decomposer.decompose(task)
    except ClassificationError as e:
        logger.error("Decomposition failed: %s", e)
        return EXIT_FATAL

    children = state.task_store.add_subtasks(task.id, specs)
    for child in children:
        print(f"#{child.id} ({child.priority.value}) {child.description}")
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    _configure_logging(settings)

    try:
        if args.command == "status":
            return cmd_status(settings)
        if args.command == "run":
            return asyncio.run(cmd_run(settings, args))
        if args.command == "decompose":
            return asyncio.run(cmd_decompose(settings, args.task_id))
    except StoreWriteError:
        logger.exception("Task store could not be written; last saved plan is intact")
        return EXIT_FATAL
    except (RuntimeError, OSError) as e:
        logger.error("Fatal: %s", e)
        return EXIT_FATAL
    except KeyboardInterrupt:
        logger.info("Interrupted; run again to resume")
        return EXIT_FATAL

    return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
