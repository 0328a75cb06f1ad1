# src/task_arbor/core/errors.py

"""
Error taxonomy.

Recoverable per-task failures (classification / generation / evaluation) leave
the task untouched so a later cycle can retry it. Store write failures are
fatal to the running scheduling cycle.
"""

from __future__ import annotations


class TaskArborError(Exception):
    """Base class for all task_arbor errors."""


class StoreReadError(TaskArborError):
    """The task file exists but could not be read or decoded."""


class StoreWriteError(TaskArborError):
    """The task file could not be replaced; last persisted state is kept."""


class ClassificationError(TaskArborError):
    """The classifier service returned nothing usable."""


class GenerationError(TaskArborError):
    """The generation service returned nothing usable, or its output could not be saved."""


class EvaluationError(TaskArborError):
    """The evaluator service returned nothing usable."""


class ArtifactNotFound(TaskArborError, FileNotFoundError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Artifact not found: {path}")
        self.path = path
