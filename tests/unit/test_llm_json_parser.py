from __future__ import annotations

from podcast_engine.application.services.llm_json_parser import (
    decode_llm_json,
    extract_fenced_json,
)


def test_extracts_first_json_fence() -> None:
    raw = 'Intro\n```json\n{"a": 1}\n```\nthen\n```json\n{"a": 2}\n```'

    assert extract_fenced_json(raw) == '{"a": 1}'
    assert decode_llm_json(raw) == {"a": 1}


def test_unfenced_json_is_parsed_whole() -> None:
    assert decode_llm_json('  {"a": [1, 2]}\n') == {"a": [1, 2]}


def test_invalid_json_is_passed_through_unparsed() -> None:
    assert decode_llm_json("Sorry, I cannot do that.") == "Sorry, I cannot do that."


def test_invalid_fenced_json_returns_original_text() -> None:
    raw = "```json\n{not json}\n```"

    assert decode_llm_json(raw) == raw


def test_structured_values_are_returned_unchanged() -> None:
    payload = {"a": 1}

    assert decode_llm_json(payload) is payload


def test_other_fences_are_ignored() -> None:
    assert extract_fenced_json('```python\nprint("x")\n```') is None
