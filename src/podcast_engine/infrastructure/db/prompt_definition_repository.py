"""SQLAlchemy adapter for versioned prompt definitions."""

from __future__ import annotations

from datetime import datetime
from typing import Any, cast

import sqlalchemy as sa
from sqlalchemy.engine import RowMapping
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from podcast_engine.application.ports.prompt_definition_repository_port import (
    ActivationConflictError,
    PromptDefinitionCreateInput,
    PromptDefinitionRecord,
    PromptDefinitionRepositoryPort,
    PromptVersionConflictError,
)
from podcast_engine.infrastructure.db.metadata import prompt_definitions

_RECORD_COLUMNS = (
    prompt_definitions.c.prompt_key,
    prompt_definitions.c.version,
    prompt_definitions.c.template,
    prompt_definitions.c.input_schema,
    prompt_definitions.c.output_schema,
    prompt_definitions.c.system_instructions,
    prompt_definitions.c.user_instructions,
    prompt_definitions.c.temperature,
    prompt_definitions.c.max_tokens,
    prompt_definitions.c.is_active,
    prompt_definitions.c.created_by,
    prompt_definitions.c.created_at,
)


def _is_duplicate_version_error(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return (
        "prompt_definitions.prompt_key, prompt_definitions.version" in message
        or "uq_prompt_definitions_key_version" in message
    )


def _is_duplicate_active_error(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return (
        message.rstrip().endswith("prompt_definitions.prompt_key")
        or "ux_prompt_definitions_key_active_true" in message
    )


def _is_database_locked_error(error: OperationalError) -> bool:
    return "database is locked" in str(error.orig).lower()


class SqlAlchemyPromptDefinitionRepository(PromptDefinitionRepositoryPort):
    """Prompt definition repository backed by SQLAlchemy async sessions.

    Mutations for one prompt key run inside a single transaction. On PostgreSQL a
    transaction-scoped advisory lock on the key serializes them; SQLite relies on
    its database-level write lock plus the unique indexes, so a concurrent insert
    that loses the lock upgrade surfaces as PromptVersionConflictError.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_version(
        self,
        *,
        prompt_key: str,
        version: int,
    ) -> PromptDefinitionRecord | None:
        """Return the row for (prompt_key, version), or None when absent."""

        statement = (
            sa.select(*_RECORD_COLUMNS)
            .where(
                prompt_definitions.c.prompt_key == prompt_key,
                prompt_definitions.c.version == version,
            )
            .limit(1)
        )

        async with self._session_factory() as session:
            result = await session.execute(statement)

        row = result.mappings().first()
        if row is None:
            return None
        return _to_record(row)

    async def get_active(self, *, prompt_key: str) -> PromptDefinitionRecord | None:
        """Return the active row for prompt_key, or None when no version is active."""

        statement = (
            sa.select(*_RECORD_COLUMNS)
            .where(
                prompt_definitions.c.prompt_key == prompt_key,
                prompt_definitions.c.is_active.is_(True),
            )
            .limit(1)
        )

        async with self._session_factory() as session:
            result = await session.execute(statement)

        row = result.mappings().first()
        if row is None:
            return None
        return _to_record(row)

    async def insert_next_version(
        self,
        payload: PromptDefinitionCreateInput,
    ) -> PromptDefinitionRecord:
        """Insert version max+1 and, when activating, deactivate siblings atomically."""

        next_version = 0
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    await _lock_prompt_key(session, prompt_key=payload.prompt_key)
                    next_version = await _next_version(session, prompt_key=payload.prompt_key)
                    if payload.activate:
                        await session.execute(
                            sa.update(prompt_definitions)
                            .where(prompt_definitions.c.prompt_key == payload.prompt_key)
                            .values(is_active=False)
                        )
                    result = await session.execute(
                        sa.insert(prompt_definitions)
                        .values(
                            prompt_key=payload.prompt_key,
                            version=next_version,
                            template=payload.template,
                            input_schema=payload.input_schema,
                            output_schema=payload.output_schema,
                            system_instructions=payload.system_instructions,
                            user_instructions=payload.user_instructions,
                            temperature=payload.temperature,
                            max_tokens=payload.max_tokens,
                            is_active=payload.activate,
                            created_by=payload.created_by,
                        )
                        .returning(*_RECORD_COLUMNS)
                    )
                    row = result.mappings().one()
            except IntegrityError as error:
                if _is_duplicate_version_error(error):
                    raise PromptVersionConflictError(
                        prompt_key=payload.prompt_key,
                        version=next_version,
                    ) from error
                if _is_duplicate_active_error(error):
                    raise ActivationConflictError(
                        prompt_key=payload.prompt_key,
                        version=next_version,
                    ) from error
                raise
            except OperationalError as error:
                # SQLite aborts one of two deferred writers that both read the max version.
                if _is_database_locked_error(error):
                    raise PromptVersionConflictError(
                        prompt_key=payload.prompt_key,
                        version=next_version,
                    ) from error
                raise

        return _to_record(row)

    async def activate_version(self, *, prompt_key: str, version: int) -> None:
        """Atomically make version the only active row or raise ActivationConflictError."""

        async with self._session_factory() as session:
            try:
                async with session.begin():
                    await _lock_prompt_key(session, prompt_key=prompt_key)
                    await session.execute(
                        sa.update(prompt_definitions)
                        .where(prompt_definitions.c.prompt_key == prompt_key)
                        .values(is_active=False)
                    )
                    result = await session.execute(
                        sa.update(prompt_definitions)
                        .where(
                            prompt_definitions.c.prompt_key == prompt_key,
                            prompt_definitions.c.version == version,
                        )
                        .values(is_active=True)
                    )
                    if int(result.rowcount or 0) != 1:
                        raise ActivationConflictError(prompt_key=prompt_key, version=version)
            except IntegrityError as error:
                if _is_duplicate_active_error(error):
                    raise ActivationConflictError(
                        prompt_key=prompt_key,
                        version=version,
                    ) from error
                raise

    async def list_active(self) -> list[PromptDefinitionRecord]:
        """Return the active row of every prompt key ordered by key."""

        statement = (
            sa.select(*_RECORD_COLUMNS)
            .where(prompt_definitions.c.is_active.is_(True))
            .order_by(prompt_definitions.c.prompt_key)
        )

        async with self._session_factory() as session:
            result = await session.execute(statement)

        return [_to_record(row) for row in result.mappings().all()]

    async def list_by_prompt_key(self, *, prompt_key: str) -> list[PromptDefinitionRecord]:
        """Return every version of prompt_key ordered by version."""

        statement = (
            sa.select(*_RECORD_COLUMNS)
            .where(prompt_definitions.c.prompt_key == prompt_key)
            .order_by(prompt_definitions.c.version)
        )

        async with self._session_factory() as session:
            result = await session.execute(statement)

        return [_to_record(row) for row in result.mappings().all()]

    async def delete_by_prompt_key(self, *, prompt_key: str) -> int:
        """Delete every version of prompt_key and return the deleted row count."""

        statement = sa.delete(prompt_definitions).where(
            prompt_definitions.c.prompt_key == prompt_key
        )

        async with self._session_factory() as session:
            async with session.begin():
                await _lock_prompt_key(session, prompt_key=prompt_key)
                result = await session.execute(statement)

        return int(result.rowcount or 0)


async def _lock_prompt_key(session: AsyncSession, *, prompt_key: str) -> None:
    if session.get_bind().dialect.name != "postgresql":
        return
    await session.execute(
        sa.select(sa.func.pg_advisory_xact_lock(sa.func.hashtext(prompt_key)))
    )


async def _next_version(session: AsyncSession, *, prompt_key: str) -> int:
    result = await session.execute(
        sa.select(sa.func.max(prompt_definitions.c.version)).where(
            prompt_definitions.c.prompt_key == prompt_key
        )
    )
    current = result.scalar_one_or_none()
    return int(current or 0) + 1


def _to_record(row: RowMapping) -> PromptDefinitionRecord:
    return PromptDefinitionRecord(
        prompt_key=cast(str, row["prompt_key"]),
        version=int(row["version"]),
        template=cast(str, row["template"]),
        input_schema=cast("dict[str, Any]", row["input_schema"] or {}),
        output_schema=cast("dict[str, Any]", row["output_schema"] or {}),
        system_instructions=cast(str, row["system_instructions"] or ""),
        user_instructions=cast(str, row["user_instructions"] or ""),
        temperature=float(row["temperature"]),
        max_tokens=int(row["max_tokens"]),
        is_active=bool(row["is_active"]),
        created_by=cast("str | None", row["created_by"]),
        created_at=cast(datetime, row["created_at"]),
    )
