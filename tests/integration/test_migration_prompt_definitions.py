from __future__ import annotations

from pathlib import Path

import pytest
import sqlalchemy as sa
from alembic.config import Config

from alembic import command

_INSERT_SQL = sa.text(
    "INSERT INTO prompt_definitions "
    "(prompt_key, version, template, input_schema, output_schema, temperature, max_tokens, "
    "is_active) "
    "VALUES (:prompt_key, :version, :template, '{}', '{}', 0.7, 3000, :is_active)"
)


def _alembic_config(database_url: str) -> Config:
    alembic_config = Config("alembic.ini")
    alembic_config.set_main_option("sqlalchemy.url", database_url)
    return alembic_config


def _upgrade_head(tmp_path: Path) -> str:
    db_path = tmp_path / "prompt_definitions_migration.db"
    database_url = f"sqlite+pysqlite:///{db_path}"
    command.upgrade(_alembic_config(database_url), "head")
    return database_url


def test_prompt_definitions_table_exists_with_seeded_podcast_script(tmp_path: Path) -> None:
    database_url = _upgrade_head(tmp_path)
    engine = sa.create_engine(database_url)
    inspector = sa.inspect(engine)

    assert "prompt_definitions" in set(inspector.get_table_names())

    columns = {column["name"]: column for column in inspector.get_columns("prompt_definitions")}
    assert set(columns.keys()) == {
        "id",
        "prompt_key",
        "version",
        "template",
        "input_schema",
        "output_schema",
        "system_instructions",
        "user_instructions",
        "temperature",
        "max_tokens",
        "is_active",
        "created_by",
        "created_at",
    }
    assert columns["created_by"]["nullable"] is True

    with engine.begin() as connection:
        rows = connection.execute(
            sa.text("SELECT prompt_key, version, is_active, template FROM prompt_definitions")
        ).mappings().all()

    assert len(rows) == 1
    assert rows[0]["prompt_key"] == "podcast-script"
    assert int(rows[0]["version"]) == 1
    assert bool(rows[0]["is_active"]) is True
    assert "{{ htmlContent }}" in str(rows[0]["template"])


def test_prompt_definitions_indexes_and_constraints_are_enforced(tmp_path: Path) -> None:
    database_url = _upgrade_head(tmp_path)
    engine = sa.create_engine(database_url)
    inspector = sa.inspect(engine)

    uniques = {
        tuple(sorted(constraint["column_names"]))
        for constraint in inspector.get_unique_constraints("prompt_definitions")
    }
    assert ("prompt_key", "version") in uniques

    indexes = {index["name"] for index in inspector.get_indexes("prompt_definitions")}
    assert "ix_prompt_definitions_prompt_key" in indexes
    assert "ux_prompt_definitions_key_active_true" in indexes

    with engine.begin() as connection:
        partial_index_sql = connection.execute(
            sa.text(
                "SELECT sql FROM sqlite_master "
                "WHERE type = 'index' AND name = 'ux_prompt_definitions_key_active_true'"
            )
        ).scalar_one()

    assert "WHERE is_active = 1" in str(partial_index_sql)

    with engine.begin() as connection:
        connection.execute(
            _INSERT_SQL,
            {"prompt_key": "custom", "version": 1, "template": "v1", "is_active": False},
        )
        with pytest.raises(sa.exc.IntegrityError):
            connection.execute(
                _INSERT_SQL,
                {"prompt_key": "custom", "version": 1, "template": "dup", "is_active": False},
            )
        with pytest.raises(sa.exc.IntegrityError):
            connection.execute(
                _INSERT_SQL,
                {"prompt_key": "zero", "version": 0, "template": "bad", "is_active": False},
            )
        with pytest.raises(sa.exc.IntegrityError):
            connection.execute(
                _INSERT_SQL,
                {
                    "prompt_key": "podcast-script",
                    "version": 2,
                    "template": "second active",
                    "is_active": True,
                },
            )
        connection.execute(
            _INSERT_SQL,
            {"prompt_key": "custom", "version": 2, "template": "v2", "is_active": True},
        )


def test_downgrade_to_base_drops_prompt_definitions(tmp_path: Path) -> None:
    database_url = _upgrade_head(tmp_path)

    command.downgrade(_alembic_config(database_url), "base")

    inspector = sa.inspect(sa.create_engine(database_url))
    assert "prompt_definitions" not in set(inspector.get_table_names())
