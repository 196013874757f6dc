"""Translate structural JSON-schema-like descriptions into pydantic validators.

Only the primitive kinds ``string``, ``number``, ``integer``, ``boolean``,
``array`` and ``object`` are interpreted. Any other value of ``type`` (or a
missing ``type``, or a schema that is not a mapping) maps to ``Any`` and accepts
every input unchanged. Stored prompt schemas predate this interpreter and may use
keywords it does not understand, so unknown kinds pass through instead of failing.
"""

from __future__ import annotations

import keyword
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
    create_model,
)

_PRIMITIVE_TYPES: dict[str, Any] = {
    "string": StrictStr,
    "number": StrictFloat,
    "integer": StrictInt,
    "boolean": StrictBool,
}
_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")
_MODEL_NAME_PATTERN = re.compile(r"[^A-Za-z0-9_]")


@dataclass(frozen=True)
class SchemaIssue:
    """One offending location reported by schema validation."""

    path: str
    message: str


class SchemaValidationError(ValueError):
    """Raised when data does not conform to a declared structural schema."""

    def __init__(self, *, issues: list[SchemaIssue]) -> None:
        self.issues = issues
        details = "; ".join(f"{issue.path}: {issue.message}" for issue in issues)
        super().__init__(f"Schema validation failed: {details}")

    @property
    def paths(self) -> list[str]:
        return [issue.path for issue in self.issues]


class SchemaValidator:
    """Runtime validator compiled from one structural schema description."""

    def __init__(self, *, schema: object, annotation: Any) -> None:
        self.schema = schema
        self._adapter: TypeAdapter[Any] = TypeAdapter(annotation)

    def validate(self, data: object) -> Any:
        """Return the typed value or raise SchemaValidationError listing bad paths."""

        try:
            return self._adapter.validate_python(data)
        except ValidationError as error:
            raise SchemaValidationError(issues=_to_issues(error)) from error

    def validate_python(self, data: object) -> Any:
        """Validate and return plain dict/list data, omitting unset optional fields."""

        value = self.validate(data)
        return self._adapter.dump_python(value, by_alias=True, exclude_unset=True)


def to_validator(schema: object) -> SchemaValidator:
    """Compile a structural schema description into a SchemaValidator."""

    return SchemaValidator(schema=schema, annotation=_to_annotation(schema, name="Root"))


def _to_annotation(schema: object, *, name: str) -> Any:
    if not isinstance(schema, Mapping):
        return Any

    kind = schema.get("type")
    if not isinstance(kind, str):
        return Any
    if kind in _PRIMITIVE_TYPES:
        return _PRIMITIVE_TYPES[kind]
    if kind == "array":
        return list[_to_annotation(schema.get("items"), name=f"{name}Item")]  # type: ignore[misc]
    if kind == "object":
        return _to_object_model(schema, name=name)
    return Any


def _to_object_model(schema: Mapping[str, Any], *, name: str) -> type[BaseModel]:
    properties = schema.get("properties")
    if not isinstance(properties, Mapping):
        properties = {}
    raw_required = schema.get("required")
    required = set(raw_required) if isinstance(raw_required, list) else set()

    fields: dict[str, Any] = {}
    taken = {str(property_name) for property_name in properties}
    for index, (property_name, property_schema) in enumerate(properties.items()):
        child_name = f"{name}_{_MODEL_NAME_PATTERN.sub('_', str(property_name))}"
        annotation = _to_annotation(property_schema, name=child_name)
        field_name = _field_name(str(property_name), index=index, taken=taken)
        taken.add(field_name)
        # Optional fields default to None without accepting an explicit null.
        if property_name in required:
            field_info = Field(alias=str(property_name))
        else:
            field_info = Field(default=None, alias=str(property_name))
        fields[field_name] = (annotation, field_info)

    # Inputs are matched by property name only, never by the internal field name.
    return create_model(  # type: ignore[call-overload, no-any-return]
        _MODEL_NAME_PATTERN.sub("_", name),
        __config__=ConfigDict(extra="ignore"),
        **fields,
    )


def _field_name(property_name: str, *, index: int, taken: set[str]) -> str:
    if (
        _IDENTIFIER_PATTERN.match(property_name)
        and not keyword.iskeyword(property_name)
        and not property_name.startswith("model_")
        and not hasattr(BaseModel, property_name)
    ):
        return property_name
    candidate = f"field_{index}"
    suffix = 0
    while candidate in taken:
        suffix += 1
        candidate = f"field_{index}_{suffix}"
    return candidate


def _to_issues(error: ValidationError) -> list[SchemaIssue]:
    issues: list[SchemaIssue] = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        issues.append(SchemaIssue(path=location or "$", message=detail["msg"]))
    return issues
