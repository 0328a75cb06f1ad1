# tests/test_logging_setup.py

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from task_arbor.cli import main as cli_main
from task_arbor.config import Settings
from task_arbor.logging_setup import setup_logging


@pytest.fixture()
def restore_root_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
    logging.captureWarnings(False)


def test_setup_logging_writes_debug_to_returned_file(tmp_path: Path, restore_root_logging: None) -> None:
    log_file = setup_logging(log_dir=tmp_path / "logs", console_level=logging.WARNING)

    assert log_file == tmp_path / "logs" / "task-arbor.log"
    logging.getLogger("task_arbor.test").debug("scheduler detail %d", 7)
    for h in logging.getLogger().handlers:
        h.flush()
    assert "scheduler detail 7" in log_file.read_text("utf-8")


def test_cli_logging_reports_log_file(settings: Settings, restore_root_logging: None) -> None:
    cli_main._configure_logging(settings)

    for h in logging.getLogger().handlers:
        h.flush()
    log_file = settings.log_dir / "task-arbor.log"
    assert f"Logging to {log_file}" in log_file.read_text("utf-8")
