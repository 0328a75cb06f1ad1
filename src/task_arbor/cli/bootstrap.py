# src/task_arbor/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- ensures the local data and work directories exist,
- builds one LLM client per role (planner / generation / utility),
- wires stores and planner services into AppState.
"""

from __future__ import annotations

import logging

from ..artifacts.workspace import ArtifactStore
from ..config import Settings, get_settings
from ..core.ports import LLMClient
from ..core.state import AppState
from ..llm.client import OpenAIChatClient
from ..planner.classifier import LLMTaskClassifier
from ..planner.context import WorkContextResolver
from ..planner.decomposer import TaskDecomposer
from ..planner.evaluator import LLMCompletionEvaluator
from ..planner.executor import TaskExecutor
from ..planner.save_location import SaveLocationResolver
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def create_artifact_store(settings: Settings) -> ArtifactStore:
    artifacts = ArtifactStore(settings.work_dir, reserved=[settings.tasks_file])
    artifacts.ensure_root()
    return artifacts


def create_initial_state(
    *,
    settings: Settings | None = None,
    planner_llm: LLMClient | None = None,
    generation_llm: LLMClient | None = None,
    utility_llm: LLMClient | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    LLM clients are injectable for tests; by default one OpenAIChatClient per role
    is built, which raises RuntimeError when no API key is configured.
    """
    if settings is None:
        settings = get_settings()

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    artifacts = create_artifact_store(settings)
    task_store = TaskStore(artifacts, settings.tasks_file)

    if planner_llm is None:
        planner_llm = OpenAIChatClient(settings, settings.planner_models)
    if generation_llm is None:
        generation_llm = OpenAIChatClient(settings, settings.generation_models)
    if utility_llm is None:
        utility_llm = OpenAIChatClient(settings, settings.utility_models)

    executor = TaskExecutor(
        generation_llm,
        artifacts,
        context_resolver=WorkContextResolver(utility_llm, artifacts),
        save_location_resolver=SaveLocationResolver(
            utility_llm,
            artifacts,
            default_extension=settings.default_extension,
        ),
    )

    return AppState(
        settings=settings,
        artifacts=artifacts,
        task_store=task_store,
        classifier=LLMTaskClassifier(planner_llm),
        executor=executor,
        evaluator=LLMCompletionEvaluator(utility_llm),
        decomposer=TaskDecomposer(planner_llm),
    )
