"""Generic LLM client protocol and simple adapter wrappers."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from podcast_engine.application.dto.prompt_models import ChatMessage


class LlmClientPort(Protocol):
    """Protocol for text completion against chat-style LLM APIs."""

    async def complete(
        self,
        *,
        messages: Sequence[ChatMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Return completion text for the supplied messages."""


class StaticLlmClient:
    """Test-friendly static client returning fixed response text."""

    def __init__(self, response_text: str) -> None:
        self._response_text = response_text
        self.calls: list[list[ChatMessage]] = []

    async def complete(
        self,
        *,
        messages: Sequence[ChatMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        self.calls.append(list(messages))
        return self._response_text
