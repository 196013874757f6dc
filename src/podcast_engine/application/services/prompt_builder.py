"""Compile prompt definitions into LLM messages and output validators."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from podcast_engine.application.dto.prompt_models import ChatMessage
from podcast_engine.application.ports.prompt_definition_repository_port import (
    PromptDefinitionRecord,
)
from podcast_engine.application.services.llm_json_parser import decode_llm_json
from podcast_engine.domain.schema_bridge import SchemaValidator, to_validator
from podcast_engine.domain.template_compiler import render_template

logger = logging.getLogger(__name__)

_USER_INSTRUCTIONS_PLACEHOLDER = "userInstructions"


class PromptRuntime:
    """Compiled message set plus the output validator for one prompt call."""

    def __init__(
        self,
        *,
        messages: list[ChatMessage],
        output_validator: SchemaValidator,
        temperature: float,
        max_tokens: int,
    ) -> None:
        self._messages = messages
        self._output_validator = output_validator
        self.temperature = temperature
        self.max_tokens = max_tokens

    def to_messages(self) -> list[ChatMessage]:
        return list(self._messages)

    def validate(self, raw: object) -> Any:
        """Return the validated reply as plain data keyed by the schema property names."""

        return self._output_validator.validate_python(decode_llm_json(raw))


@dataclass(frozen=True)
class CompiledPromptDefinition:
    """Prompt definition record with the ability to compile placeholders."""

    record: PromptDefinitionRecord

    @property
    def prompt_key(self) -> str:
        return self.record.prompt_key

    @property
    def version(self) -> int:
        return self.record.version

    @property
    def is_active(self) -> bool:
        return self.record.is_active

    def compile(self, placeholders: Mapping[str, object]) -> PromptRuntime:
        """Validate placeholders, render the template, and assemble messages."""

        to_validator(self.record.input_schema).validate(dict(placeholders))
        rendered = render_template(self.record.template, placeholders)
        messages = [
            ChatMessage(role="system", content=_build_system_content(self.record)),
            ChatMessage(
                role="user",
                content=_build_user_content(
                    self.record,
                    rendered=rendered,
                    placeholders=placeholders,
                ),
            ),
        ]
        logger.debug(
            "prompt_compiled prompt_key=%s version=%s user_chars=%s",
            self.record.prompt_key,
            self.record.version,
            len(messages[1].content),
        )
        return PromptRuntime(
            messages=messages,
            output_validator=to_validator(self.record.output_schema),
            temperature=self.record.temperature,
            max_tokens=self.record.max_tokens,
        )


def build_schema_instruction(output_schema: Mapping[str, Any]) -> str:
    """Return the JSON-only reply instruction embedding the output schema."""

    return (
        "**Validate JSON:** Ensure the final output is a single, valid complete JSON "
        "object matching the schema exactly.\n\n"
        "**REMEMBER: Output ONLY the JSON object.**\n"
        "You MUST return JSON matching this schema: "
        f"{json.dumps(output_schema, ensure_ascii=False, sort_keys=True)}"
    )


def _build_system_content(record: PromptDefinitionRecord) -> str:
    sections = [record.system_instructions.strip(), build_schema_instruction(record.output_schema)]
    return "\n\n".join(section for section in sections if section)


def _build_user_content(
    record: PromptDefinitionRecord,
    *,
    rendered: str,
    placeholders: Mapping[str, object],
) -> str:
    sections: list[str] = []
    if record.user_instructions.strip():
        sections.append(record.user_instructions.strip())
    extra_instructions = placeholders.get(_USER_INSTRUCTIONS_PLACEHOLDER)
    if isinstance(extra_instructions, str) and extra_instructions.strip():
        sections.append(f"<userInstructions>{extra_instructions.strip()}</userInstructions>")
    sections.append(rendered)
    return "\n\n".join(sections)
