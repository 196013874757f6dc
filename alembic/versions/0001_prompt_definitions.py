"""Create prompt_definitions with versioning and single-active constraints."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_prompt_definitions"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "prompt_definitions",
        sa.Column(
            "id",
            sa.BigInteger().with_variant(sa.Integer(), "sqlite"),
            primary_key=True,
            autoincrement=True,
        ),
        sa.Column("prompt_key", sa.Text(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("template", sa.Text(), nullable=False),
        sa.Column("input_schema", sa.JSON(), nullable=False),
        sa.Column("output_schema", sa.JSON(), nullable=False),
        sa.Column(
            "system_instructions",
            sa.Text(),
            nullable=False,
            server_default=sa.text("''"),
        ),
        sa.Column(
            "user_instructions",
            sa.Text(),
            nullable=False,
            server_default=sa.text("''"),
        ),
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

    op.create_index(
        "ix_prompt_definitions_prompt_key",
        "prompt_definitions",
        ["prompt_key"],
        unique=False,
    )
    op.create_index(
        "ux_prompt_definitions_key_active_true",
        "prompt_definitions",
        ["prompt_key"],
        unique=True,
        sqlite_where=sa.text("is_active = 1"),
        postgresql_where=sa.text("is_active = true"),
    )


def downgrade() -> None:
    op.drop_index("ux_prompt_definitions_key_active_true", table_name="prompt_definitions")
    op.drop_index("ix_prompt_definitions_prompt_key", table_name="prompt_definitions")
    op.drop_table("prompt_definitions")
