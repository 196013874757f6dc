"""Typed podcast script models produced by the script-generation prompt."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DialogueLine(BaseModel):
    """One speaker utterance; list order is the audio order."""

    model_config = ConfigDict(frozen=True)

    speaker: str = Field(min_length=1)
    line: str = Field(min_length=1)


class PodcastScript(BaseModel):
    """Complete two-host script returned by the podcast-script prompt."""

    title: str = Field(min_length=1)
    summary: str = Field(min_length=1, max_length=300)
    tags: list[str] = Field(min_length=1)
    dialogue: list[DialogueLine] = Field(min_length=1)

    @classmethod
    def from_validated(cls, value: BaseModel | Mapping[str, Any]) -> PodcastScript:
        """Build a typed script from a registry-validated prompt output."""

        if isinstance(value, BaseModel):
            value = value.model_dump(by_alias=True, exclude_unset=True)
        return cls.model_validate(value)

    def speakers(self) -> list[str]:
        """Return distinct speakers in order of first appearance."""

        seen: dict[str, None] = {}
        for entry in self.dialogue:
            seen.setdefault(entry.speaker, None)
        return list(seen)
