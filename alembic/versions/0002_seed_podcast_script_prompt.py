"""Seed the active podcast-script prompt definition."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0002_seed_podcast_script_prompt"
down_revision = "0001_prompt_definitions"
branch_labels = None
depends_on = None

PROMPT_KEY = "podcast-script"

_NON_EMPTY_STRING = {"type": "string"}

INPUT_SCHEMA = {
    "type": "object",
    "properties": {
        "htmlContent": _NON_EMPTY_STRING,
        "hostName": _NON_EMPTY_STRING,
        "hostPersonalityDescription": _NON_EMPTY_STRING,
        "cohostName": _NON_EMPTY_STRING,
        "cohostPersonalityDescription": _NON_EMPTY_STRING,
        "userInstructions": _NON_EMPTY_STRING,
    },
    "required": [
        "htmlContent",
        "hostName",
        "hostPersonalityDescription",
        "cohostName",
        "cohostPersonalityDescription",
    ],
}

OUTPUT_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "summary": {"type": "string"},
        "tags": {"type": "array", "items": {"type": "string"}},
        "dialogue": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "speaker": {"type": "string"},
                    "line": {"type": "string"},
                },
                "required": ["speaker", "line"],
            },
        },
    },
    "required": ["title", "summary", "tags", "dialogue"],
}

SYSTEM_INSTRUCTIONS = (
    "You are an expert podcast script writer. You turn financial articles into "
    "engaging two-host conversations."
)

TEMPLATE = """Create an engaging podcast script based only on the essential information \
in the following HTML document. The script features two hosts, "{{ hostName }}" and \
"{{ cohostName }}".

**Host Personalities:**
* **(Host):** Name is {{ hostName }}. Personality: {{ hostPersonalityDescription }}.
* **(Co-host):** Name is {{ cohostName }}. Personality: {{ cohostPersonalityDescription }}.

Generate 3 tags that represent the main ideas of the topic and a short summary of no \
more than 240 characters.

**Script Generation Guidelines:**
1. **Analyze HTML:** Extract the core topic, main points, and key details. Ignore \
headers, footers, navigation, ads, and sidebars.
2. **Embody Personalities:** Write each host's lines in their personality and keep a \
natural back-and-forth.
3. **Write Dialogue:** Every dialogue entry has "speaker" set to {{ hostName }} or \
{{ cohostName }} and a non-empty "line".

{{ htmlContent }}
"""


def upgrade() -> None:
    prompt_definitions = sa.table(
        "prompt_definitions",
        sa.column("prompt_key", sa.Text()),
        sa.column("version", sa.Integer()),
        sa.column("template", sa.Text()),
        sa.column("input_schema", sa.JSON()),
        sa.column("output_schema", sa.JSON()),
        sa.column("system_instructions", sa.Text()),
        sa.column("user_instructions", sa.Text()),
        sa.column("temperature", sa.Float()),
        sa.column("max_tokens", sa.Integer()),
        sa.column("is_active", sa.Boolean()),
    )
    op.bulk_insert(
        prompt_definitions,
        [
            {
                "prompt_key": PROMPT_KEY,
                "version": 1,
                "template": TEMPLATE,
                "input_schema": INPUT_SCHEMA,
                "output_schema": OUTPUT_SCHEMA,
                "system_instructions": SYSTEM_INSTRUCTIONS,
                "user_instructions": "",
                "temperature": 0.7,
                "max_tokens": 3000,
                "is_active": True,
            }
        ],
    )


def downgrade() -> None:
    op.execute(
        sa.text("DELETE FROM prompt_definitions WHERE prompt_key = :prompt_key").bindparams(
            prompt_key=PROMPT_KEY
        )
    )
