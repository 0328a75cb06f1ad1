# src/task_arbor/planner/context.py

from __future__ import annotations

import logging

from pydantic import TypeAdapter

from ..core.ports import ArtifactRepo, LLMClient
from ..llm.structured import StructuredOutputError, request_structured
from .schemas import RelevantFilesReply

logger = logging.getLogger(__name__)

RELEVANT_FILES_SYSTEM_PROMPT = """
You are a file system explorer that specializes in determining the files that
are relevant to a given prompt.

Only choose paths from the provided file list.
Return a JSON array of file paths (an empty array if nothing is relevant).
""".strip()

_REPLY = TypeAdapter(list[str] | RelevantFilesReply)


class WorkContextResolver:
    """Loads the existing artifacts that matter for a prompt, as one text block."""

    def __init__(self, llm: LLMClient, artifacts: ArtifactRepo) -> None:
        self._llm = llm
        self._artifacts = artifacts

    async def relevant_paths(self, prompt: str, listing: list[str]) -> list[str]:
        user_message = (
            f"The prompt is:\n{prompt}\n\n"
            "The file list is:\n" + "\n".join(listing) + "\n\n"
            "What files are necessary to understand the prompt? "
            "Return the list of file paths that should be read and included in the prompt context."
        )
        reply = await request_structured(
            self._llm,
            system_prompt=RELEVANT_FILES_SYSTEM_PROMPT,
            user_message=user_message,
            schema=_REPLY,
        )
        paths = reply.files if isinstance(reply, RelevantFilesReply) else reply

        out: list[str] = []
        for p in paths:
            p = str(p).strip()
            if p and p not in out:
                out.append(p)
        return out

    async def resolve(self, prompt: str) -> str:
        listing = self._artifacts.list_paths()
        if not listing:
            return ""

        try:
            paths = await self.relevant_paths(prompt, listing)
        except StructuredOutputError:
            logger.warning("File relevance reply unusable; continuing without context")
            return ""

        chunks: list[str] = []
        for path in paths:
            if self._artifacts.is_reserved(path):
                continue
            try:
                content = self._artifacts.read_text(path)
            except (OSError, ValueError, UnicodeDecodeError):
                # Includes ArtifactNotFound: models do name files that don't exist.
                logger.debug("Context file skipped: %s", path)
                continue
            chunks.append(f"{path}\n{content}")

        logger.debug("Context resolved files=%d chars=%d", len(chunks), sum(len(c) for c in chunks))
        return "\n\n".join(chunks)
