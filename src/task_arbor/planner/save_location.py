# src/task_arbor/planner/save_location.py

from __future__ import annotations

import logging
from pathlib import PurePosixPath

from ..core.ports import ArtifactRepo, LLMClient
from ..llm.structured import request_structured
from .schemas import SaveLocationReply

logger = logging.getLogger(__name__)

SAVE_LOCATION_SYSTEM_PROMPT = """
You are a planning assistant for a long-horizon AI system.
Your job is to decide where the result of a given task should be saved.

Use clean, structured, hierarchical paths. You may include folders like
"chapters/", "scenes/", or "notes/" based on the task type.
If the task should create a new file, return the path to the new file.
If the task should edit an existing file, return the path to the existing file.
""".strip()


def with_default_extension(path: str, default_extension: str = ".md") -> str:
    """Append default_extension when the file name has no extension."""
    path = path.rstrip("/")
    name = PurePosixPath(path).name
    if PurePosixPath(name).suffix:
        return path
    return path + default_extension


class SaveLocationResolver:
    def __init__(self, llm: LLMClient, artifacts: ArtifactRepo, *, default_extension: str = ".md") -> None:
        self._llm = llm
        self._artifacts = artifacts
        self._default_extension = default_extension

    async def resolve(self, prompt: str) -> str:
        """
        Ask where the result of prompt belongs. Returns a relative path with an
        extension; validation against the artifact root is left to the caller.
        """
        listing = self._artifacts.list_paths()
        user_message = (
            "Given the following task, determine where the result should be saved.\n\n"
            f'Task: "{prompt}"\n'
            "Current file tree:\n" + ("\n".join(listing) or "(empty)") + "\n\n"
            'Return a single file path, such as "chapters/chapter_02.md" or "notes/plot_outline.md".'
        )
        reply = await request_structured(
            self._llm,
            system_prompt=SAVE_LOCATION_SYSTEM_PROMPT,
            user_message=user_message,
            schema=SaveLocationReply,
        )
        path = with_default_extension(reply.path.strip(), self._default_extension)
        logger.debug("Save location %s (reason=%s)", path, reply.reason)
        return path
