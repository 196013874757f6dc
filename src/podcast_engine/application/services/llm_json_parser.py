"""Helpers for locating JSON payloads inside free-form LLM replies."""

from __future__ import annotations

import json
import re

_JSON_FENCE_PATTERN = re.compile(r"```json[ \t]*\r?\n(.*?)```", re.DOTALL)


def extract_fenced_json(raw: str) -> str | None:
    """Return the inner text of the first ```json fenced block, if any."""

    match = _JSON_FENCE_PATTERN.search(raw)
    if match is None:
        return None
    return match.group(1).strip()


def decode_llm_json(raw: object) -> object:
    """Decode a model reply into structured data when possible.

    Strings are reduced to their first ```json fenced block (or used whole) and
    parsed. Text that is not valid JSON is returned unchanged so schema validation
    reports a type error for it. Non-string values are returned as-is.
    """

    if not isinstance(raw, str):
        return raw

    candidate = extract_fenced_json(raw)
    if candidate is None:
        candidate = raw.strip()
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        return raw
