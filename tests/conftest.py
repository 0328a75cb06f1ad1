# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from task_arbor.artifacts.workspace import ArtifactStore
from task_arbor.config import Settings
from task_arbor.tasks.task_store import TaskStore


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a per-test directory; never reads the real environment."""
    data_dir = tmp_path / "data"
    return Settings(
        app_name="task-arbor-test",
        log_level="DEBUG",
        api_key="test-key",
        base_url="",
        planner_models=["planner-model"],
        generation_models=["generation-model"],
        utility_models=["utility-model"],
        connect_timeout_seconds=1.0,
        read_timeout_seconds=1.0,
        data_dir=data_dir,
        work_dir=data_dir / "work",
        log_dir=data_dir,
        tasks_file="tasks.json",
        max_iterations=50,
        default_extension=".md",
    )


@pytest.fixture()
def artifacts(tmp_path: Path) -> ArtifactStore:
    store = ArtifactStore(tmp_path / "work", reserved=["tasks.json"])
    store.ensure_root()
    return store


@pytest.fixture()
def task_store(artifacts: ArtifactStore) -> TaskStore:
    return TaskStore(artifacts, "tasks.json")


@pytest.fixture()
def events() -> list[tuple[str, int]]:
    """Shared call log for the fake services (call-order assertions)."""
    return []
