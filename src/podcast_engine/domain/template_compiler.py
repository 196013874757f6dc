"""Jinja2-backed rendering of stored prompt templates."""

from __future__ import annotations

from collections.abc import Mapping
from functools import lru_cache

from jinja2 import ChainableUndefined, Environment, Template, TemplateSyntaxError, meta

_environment = Environment(
    autoescape=False,
    keep_trailing_newline=True,
    undefined=ChainableUndefined,
)


class TemplateRenderError(ValueError):
    """Raised when a stored template cannot be parsed."""


def render_template(template: str, placeholders: Mapping[str, object]) -> str:
    """Render template text; missing placeholders and their attributes render empty."""

    return _compile(template).render(dict(placeholders))


def referenced_placeholders(template: str) -> set[str]:
    """Return top-level placeholder names referenced by the template."""

    try:
        parsed = _environment.parse(template)
    except TemplateSyntaxError as error:
        raise TemplateRenderError(f"Invalid prompt template: {error.message}") from error
    return set(meta.find_undeclared_variables(parsed))


@lru_cache(maxsize=128)
def _compile(template: str) -> Template:
    try:
        return _environment.from_string(template)
    except TemplateSyntaxError as error:
        raise TemplateRenderError(f"Invalid prompt template: {error.message}") from error
