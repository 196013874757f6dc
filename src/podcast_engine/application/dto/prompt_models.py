"""Pydantic models for prompt registry inputs and compiled messages."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

TemperatureFloat = Annotated[float, Field(ge=0.0, le=2.0)]
PositiveInt = Annotated[int, Field(gt=0)]


class PromptVersionFields(BaseModel):
    """Client-supplied fields for a new prompt version."""

    model_config = ConfigDict(extra="forbid")

    template: str = Field(min_length=1)
    input_schema: dict[str, Any] = Field(default_factory=dict)
    output_schema: dict[str, Any] = Field(default_factory=dict)
    system_instructions: str = ""
    user_instructions: str = ""
    temperature: TemperatureFloat = 0.7
    max_tokens: PositiveInt = 3000
    created_by: str | None = None


class ChatMessage(BaseModel):
    """Role-tagged plain-text message sent to the LLM collaborator."""

    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user"]
    content: str
