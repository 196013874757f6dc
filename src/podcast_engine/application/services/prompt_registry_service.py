"""Prompt registry: versioning, activation, and compile-capable lookups."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

from podcast_engine.application.dto.prompt_models import PromptVersionFields
from podcast_engine.application.ports.prompt_definition_repository_port import (
    PromptDefinitionCreateInput,
    PromptDefinitionRecord,
    PromptDefinitionRepositoryPort,
    PromptNotFoundError,
)
from podcast_engine.application.services.prompt_builder import CompiledPromptDefinition
from podcast_engine.domain.template_compiler import referenced_placeholders

logger = logging.getLogger(__name__)


class _VersionCache:
    """TTL cache for explicit (prompt_key, version) lookups.

    Only the ``is_active`` flag of a stored version can change, so cached records
    may report a stale activation flag until they expire.
    """

    def __init__(self, *, ttl_seconds: float, clock: Callable[[], float]) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[tuple[str, int], tuple[float, PromptDefinitionRecord]] = {}

    def get(self, prompt_key: str, version: int) -> PromptDefinitionRecord | None:
        entry = self._entries.get((prompt_key, version))
        if entry is None:
            return None
        expires_at, record = entry
        if self._clock() >= expires_at:
            del self._entries[(prompt_key, version)]
            return None
        return record

    def put(self, record: PromptDefinitionRecord) -> None:
        expires_at = self._clock() + self._ttl_seconds
        self._entries[(record.prompt_key, record.version)] = (expires_at, record)

    def evict_key(self, prompt_key: str) -> None:
        for cache_key in [key for key in self._entries if key[0] == prompt_key]:
            del self._entries[cache_key]


class PromptRegistryService:
    """Manage versioned prompt definitions with at most one active version per key."""

    def __init__(
        self,
        *,
        prompt_definitions: PromptDefinitionRepositoryPort,
        cache_ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._prompt_definitions = prompt_definitions
        self._cache = (
            _VersionCache(ttl_seconds=cache_ttl_seconds, clock=clock)
            if cache_ttl_seconds
            else None
        )

    async def get(
        self,
        *,
        prompt_key: str,
        version: int | None = None,
    ) -> CompiledPromptDefinition:
        """Return the requested (or active) version with compile capability."""

        record = await self._fetch(prompt_key=prompt_key, version=version)
        return CompiledPromptDefinition(record=record)

    async def get_details(
        self,
        *,
        prompt_key: str,
        version: int | None = None,
    ) -> PromptDefinitionRecord:
        """Return the requested (or active) version as plain data."""

        return await self._fetch(prompt_key=prompt_key, version=version)

    async def create_new_version(
        self,
        *,
        prompt_key: str,
        fields: PromptVersionFields | Mapping[str, Any],
        activate: bool = False,
    ) -> CompiledPromptDefinition:
        """Insert the next version of prompt_key, optionally making it active."""

        if not prompt_key.strip():
            raise ValueError("prompt_key must not be empty")
        if not isinstance(fields, PromptVersionFields):
            fields = PromptVersionFields.model_validate(fields)

        _warn_on_undeclared_placeholders(prompt_key=prompt_key, fields=fields)
        record = await self._prompt_definitions.insert_next_version(
            PromptDefinitionCreateInput(
                prompt_key=prompt_key,
                template=fields.template,
                input_schema=fields.input_schema,
                output_schema=fields.output_schema,
                system_instructions=fields.system_instructions,
                user_instructions=fields.user_instructions,
                temperature=fields.temperature,
                max_tokens=fields.max_tokens,
                created_by=fields.created_by,
                activate=activate,
            )
        )
        logger.info(
            "prompt_version_created prompt_key=%s version=%s active=%s",
            record.prompt_key,
            record.version,
            record.is_active,
        )
        return CompiledPromptDefinition(record=record)

    async def set_active(self, *, prompt_key: str, version: int) -> None:
        """Make version the single active version of prompt_key."""

        await self._prompt_definitions.activate_version(prompt_key=prompt_key, version=version)
        logger.info("prompt_version_activated prompt_key=%s version=%s", prompt_key, version)

    async def list_all(self) -> list[CompiledPromptDefinition]:
        """Return the active version of every prompt key."""

        records = await self._prompt_definitions.list_active()
        return [CompiledPromptDefinition(record=record) for record in records]

    async def list_all_by_prompt_key(self, *, prompt_key: str) -> list[CompiledPromptDefinition]:
        """Return every version of prompt_key, active or not."""

        records = await self._prompt_definitions.list_by_prompt_key(prompt_key=prompt_key)
        return [CompiledPromptDefinition(record=record) for record in records]

    async def delete_prompt_key(self, *, prompt_key: str) -> int:
        """Remove every version of prompt_key."""

        deleted = await self._prompt_definitions.delete_by_prompt_key(prompt_key=prompt_key)
        if self._cache is not None:
            self._cache.evict_key(prompt_key)
        if deleted == 0:
            raise PromptNotFoundError(prompt_key=prompt_key)
        logger.info("prompt_key_deleted prompt_key=%s versions=%s", prompt_key, deleted)
        return deleted

    async def _fetch(self, *, prompt_key: str, version: int | None) -> PromptDefinitionRecord:
        if version is None:
            record = await self._prompt_definitions.get_active(prompt_key=prompt_key)
            if record is None:
                raise PromptNotFoundError(prompt_key=prompt_key)
            return record

        if self._cache is not None:
            cached = self._cache.get(prompt_key, version)
            if cached is not None:
                return cached

        record = await self._prompt_definitions.get_by_version(
            prompt_key=prompt_key,
            version=version,
        )
        if record is None:
            raise PromptNotFoundError(prompt_key=prompt_key, version=version)
        if self._cache is not None:
            self._cache.put(record)
        return record


def _warn_on_undeclared_placeholders(*, prompt_key: str, fields: PromptVersionFields) -> None:
    properties = fields.input_schema.get("properties")
    declared = set(properties) if isinstance(properties, Mapping) else set()
    undeclared = sorted(referenced_placeholders(fields.template) - declared)
    if undeclared:
        logger.warning(
            "prompt_template_undeclared_placeholders prompt_key=%s placeholders=%s",
            prompt_key,
            ",".join(undeclared),
        )
