# src/task_arbor/llm/structured.py

"""
Structured (JSON) requests on top of a streaming chat client.

The expected JSON schema is appended to the system prompt; the reply is
collected, the JSON payload is cut out of any surrounding prose or code fences,
and validated with pydantic.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

from ..core.ports import ChatMessage, LLMClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StructuredOutputError(ValueError):
    """The model reply was empty, not JSON, or did not match the schema."""

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


def extract_json(raw: str) -> str:
    """Return the outermost JSON object/array found in raw (or raw itself)."""
    raw = raw.strip()
    if raw.startswith("```"):
        raw = raw.strip("`")
        if raw.lower().startswith("json"):
            raw = raw[4:]
        raw = raw.strip()
    if (raw.startswith("{") and raw.endswith("}")) or (raw.startswith("[") and raw.endswith("]")):
        return raw

    starts = [i for i in (raw.find("{"), raw.find("[")) if i != -1]
    if not starts:
        return raw
    first = min(starts)
    closer = "}" if raw[first] == "{" else "]"
    last = raw.rfind(closer)
    if last > first:
        return raw[first : last + 1]
    return raw


def _schema_instructions(adapter: TypeAdapter[Any]) -> str:
    schema = json.dumps(adapter.json_schema(), ensure_ascii=False, indent=2)
    return (
        "Return STRICT JSON only. No extra text. No Markdown.\n"
        "The JSON must match this schema:\n"
        f"{schema}"
    )


def collect_text(llm: LLMClient, messages: list[ChatMessage], system_prompt: str) -> str:
    return "".join(llm.stream_chat(messages, system_prompt))


def parse_structured(raw: str, adapter: TypeAdapter[T]) -> T:
    raw = (raw or "").strip()
    if not raw:
        raise StructuredOutputError("model returned an empty reply")
    try:
        data = json.loads(extract_json(raw))
    except json.JSONDecodeError as e:
        raise StructuredOutputError(f"reply is not JSON: {e}", raw) from e
    try:
        return adapter.validate_python(data)
    except ValidationError as e:
        raise StructuredOutputError(f"reply does not match schema: {e.error_count()} error(s)", raw) from e


async def request_structured(
    llm: LLMClient,
    *,
    system_prompt: str,
    user_message: str,
    schema: type[T] | TypeAdapter[T],
) -> T:
    """
    Ask the model for a JSON reply and validate it against schema.

    Transport failures propagate unchanged; bad replies raise StructuredOutputError.
    The blocking client call runs in a worker thread.
    """
    adapter = schema if isinstance(schema, TypeAdapter) else TypeAdapter(schema)
    full_prompt = f"{system_prompt.strip()}\n\n{_schema_instructions(adapter)}"
    messages: list[ChatMessage] = [{"role": "user", "content": user_message}]

    raw = await asyncio.to_thread(collect_text, llm, messages, full_prompt)

    try:
        return parse_structured(raw, adapter)
    except StructuredOutputError:
        logger.debug("Structured reply rejected. Raw=%r", raw[:2000])
        raise
