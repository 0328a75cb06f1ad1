# tests/test_structured.py

from __future__ import annotations

import pytest
from pydantic import TypeAdapter

from task_arbor.llm.structured import StructuredOutputError, extract_json, parse_structured
from task_arbor.planner.schemas import EvaluationReply


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ('{"a": 1}', '{"a": 1}'),
        ('Here you go: {"a": 1} hope it helps', '{"a": 1}'),
        ('```json\n["x", "y"]\n```', '["x", "y"]'),
        ('result: ["x"]', '["x"]'),
        ("no json here", "no json here"),
    ],
)
def test_extract_json(raw: str, expected: str) -> None:
    assert extract_json(raw) == expected


def test_parse_structured_validates() -> None:
    adapter = TypeAdapter(EvaluationReply)
    reply = parse_structured('{"status": "defer", "reason": "blocked"}', adapter)
    assert reply == EvaluationReply(status="defer", reason="blocked")


@pytest.mark.parametrize("raw", ["", "   ", "{broken", '{"status": "done"}', "[1, 2]"])
def test_parse_structured_rejects(raw: str) -> None:
    with pytest.raises(StructuredOutputError):
        parse_structured(raw, TypeAdapter(EvaluationReply))
