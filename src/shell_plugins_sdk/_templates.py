"""The shared template engine."""

from __future__ import annotations

from typing import Any

from jinja2 import Environment, StrictUndefined, TemplateError

from .errors import RenderError

# Strict: referencing an undefined variable is a render error.
ENGINE = Environment(
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=True,
    trim_blocks=False,
    lstrip_blocks=False,
)


def render_string(template: str, data: dict[str, Any]) -> str:
    """Compile and render a one-off template string."""
    try:
        compiled = ENGINE.from_string(template)
    except TemplateError as e:
        raise RenderError(f"failed to compile template `{template}`", template=template) from e
    try:
        return compiled.render(data)
    except TemplateError as e:
        raise RenderError(f"failed to render template `{template}`", template=template) from e
