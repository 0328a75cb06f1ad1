# src/task_arbor/planner/executor.py

from __future__ import annotations

import logging

from ..artifacts.workspace import ArtifactStore
from ..core.errors import GenerationError
from ..core.ports import ArtifactRepo, LLMClient
from ..llm.structured import StructuredOutputError, request_structured
from .context import WorkContextResolver
from .save_location import SaveLocationResolver
from .schemas import GeneratedArtifactReply

logger = logging.getLogger(__name__)

GENERATION_SYSTEM_PROMPT = """
You are a meticulous writer and engineer executing one step of a larger plan.

Produce the complete artifact for the task: "content" is the full file body
(it replaces any previous version of the file), "summary_of_work_done" is a
short note about what this step accomplished.
""".strip()


def build_generation_message(prompt: str, context: str, prior_work: str) -> str:
    return (
        f"Here is the context for your task:\n{context or '(no existing files)'}\n\n"
        f"Here is the work that has already been done:\n{prior_work or '(nothing yet)'}\n\n"
        f"Task:\n{prompt}"
    )


class TaskExecutor:
    """
    Runs one ready task:
    context -> save location -> generation -> write artifact -> return work summary.

    The executor never touches the task store; the scheduler appends the summary.
    """

    def __init__(
        self,
        llm: LLMClient,
        artifacts: ArtifactRepo,
        *,
        context_resolver: WorkContextResolver,
        save_location_resolver: SaveLocationResolver,
    ) -> None:
        self._llm = llm
        self._artifacts = artifacts
        self._context = context_resolver
        self._save_location = save_location_resolver

    async def execute(self, prompt: str, prior_work: str) -> str:
        try:
            context = await self._context.resolve(prompt)
            raw_path = await self._save_location.resolve(prompt)
        except StructuredOutputError as e:
            raise GenerationError(f"save location reply unusable: {e}") from e
        except Exception as e:
            raise GenerationError(f"preparing generation failed: {e}") from e

        try:
            path = ArtifactStore.normalize(raw_path)
        except ValueError as e:
            raise GenerationError(f"invalid save location {raw_path!r}: {e}") from e
        if self._artifacts.is_reserved(path):
            raise GenerationError(f"save location {path!r} is reserved")
        if ArtifactStore.is_hidden(path):
            raise GenerationError(f"save location {path!r} is hidden from the artifact listing")

        try:
            reply = await request_structured(
                self._llm,
                system_prompt=GENERATION_SYSTEM_PROMPT,
                user_message=build_generation_message(prompt, context, prior_work),
                schema=GeneratedArtifactReply,
            )
        except StructuredOutputError as e:
            raise GenerationError(f"generation reply unusable: {e}") from e
        except Exception as e:
            raise GenerationError(f"generation call failed: {e}") from e

        try:
            self._artifacts.write_text(path, reply.content)
        except OSError as e:
            raise GenerationError(f"cannot save artifact {path!r}: {e}") from e

        logger.info("Artifact saved path=%s chars=%d", path, len(reply.content))
        return reply.summary_of_work_done
