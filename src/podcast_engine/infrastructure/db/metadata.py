"""SQLAlchemy metadata definitions for podcast engine tables."""

from __future__ import annotations

import sqlalchemy as sa

metadata = sa.MetaData()
sqlite_bigint = sa.BigInteger().with_variant(sa.Integer(), "sqlite")

prompt_definitions = sa.Table(
    "prompt_definitions",
    metadata,
    sa.Column("id", sqlite_bigint, primary_key=True, autoincrement=True),
    sa.Column("prompt_key", sa.Text(), nullable=False),
    sa.Column("version", sa.Integer(), nullable=False),
    sa.Column("template", sa.Text(), nullable=False),
    sa.Column("input_schema", sa.JSON(), nullable=False),
    sa.Column("output_schema", sa.JSON(), nullable=False),
    sa.Column("system_instructions", sa.Text(), nullable=False, server_default=sa.text("''")),
    sa.Column("user_instructions", sa.Text(), nullable=False, server_default=sa.text("''")),
    sa.Column("temperature", sa.Float(), nullable=False),
    sa.Column("max_tokens", sa.Integer(), nullable=False),
    sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column("created_by", sa.Text(), nullable=True),
    sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
    sa.UniqueConstraint("prompt_key", "version", name="uq_prompt_definitions_key_version"),
    sa.CheckConstraint("version > 0", name="ck_prompt_definitions_version_positive"),
)

sa.Index("ix_prompt_definitions_prompt_key", prompt_definitions.c.prompt_key)
sa.Index(
    "ux_prompt_definitions_key_active_true",
    prompt_definitions.c.prompt_key,
    unique=True,
    sqlite_where=sa.text("is_active = 1"),
    postgresql_where=sa.text("is_active = true"),
)
