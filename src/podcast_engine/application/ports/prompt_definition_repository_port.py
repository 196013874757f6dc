"""Port for versioned prompt definition persistence."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol


class PromptNotFoundError(LookupError):
    """Raised when a prompt key, version, or active version does not exist."""

    def __init__(self, *, prompt_key: str, version: int | None = None) -> None:
        self.prompt_key = prompt_key
        self.version = version
        if version is None:
            message = f"No active prompt definition for key '{prompt_key}'"
        else:
            message = f"Prompt definition '{prompt_key}' version {version} not found"
        super().__init__(message)


class ActivationConflictError(PromptNotFoundError):
    """Raised when activation targets a missing version; nothing was changed."""


class PromptVersionConflictError(RuntimeError):
    """Raised when a concurrent writer already claimed the computed next version."""

    def __init__(self, *, prompt_key: str, version: int) -> None:
        self.prompt_key = prompt_key
        self.version = version
        super().__init__(
            f"Prompt definition '{prompt_key}' version {version} was created concurrently"
        )


@dataclass(frozen=True)
class PromptDefinitionCreateInput:
    """Values for inserting the next version of a prompt key."""

    prompt_key: str
    template: str
    input_schema: dict[str, Any]
    output_schema: dict[str, Any]
    system_instructions: str
    user_instructions: str
    temperature: float
    max_tokens: int
    created_by: str | None
    activate: bool


@dataclass(frozen=True)
class PromptDefinitionRecord:
    """Persisted prompt definition version."""

    prompt_key: str
    version: int
    template: str
    input_schema: dict[str, Any]
    output_schema: dict[str, Any]
    system_instructions: str
    user_instructions: str
    temperature: float
    max_tokens: int
    is_active: bool
    created_by: str | None
    created_at: datetime


class PromptDefinitionRepositoryPort(Protocol):
    """Prompt definition persistence contract."""

    async def get_by_version(
        self,
        *,
        prompt_key: str,
        version: int,
    ) -> PromptDefinitionRecord | None:
        """Return the row for (prompt_key, version), or None when absent."""

    async def get_active(self, *, prompt_key: str) -> PromptDefinitionRecord | None:
        """Return the active row for prompt_key, or None when no version is active."""

    async def insert_next_version(
        self,
        payload: PromptDefinitionCreateInput,
    ) -> PromptDefinitionRecord:
        """Insert version max+1 and, when activating, deactivate siblings atomically."""

    async def activate_version(self, *, prompt_key: str, version: int) -> None:
        """Atomically make version the only active row or raise ActivationConflictError."""

    async def list_active(self) -> list[PromptDefinitionRecord]:
        """Return the active row of every prompt key ordered by key."""

    async def list_by_prompt_key(self, *, prompt_key: str) -> list[PromptDefinitionRecord]:
        """Return every version of prompt_key ordered by version."""

    async def delete_by_prompt_key(self, *, prompt_key: str) -> int:
        """Delete every version of prompt_key and return the deleted row count."""
