"""Render a locked config into a shell startup script."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from jinja2 import TemplateError

from ._templates import ENGINE
from .errors import RenderError
from .models.locked import LockedExternalPlugin

if TYPE_CHECKING:
    from jinja2 import Template as CompiledTemplate

    from .models.config import InlinePlugin
    from .models.locked import LockedConfig

logger = logging.getLogger(__name__)


def render_script(locked: LockedConfig) -> str:
    """Render every plugin's applied templates, in plugin order.

    Every template is compiled once up front. A template with ``each`` set is
    rendered once per matched file, with ``file`` added to the plugin data;
    otherwise it is rendered once per plugin. Each rendering ends with a
    newline.

    Raises:
        RenderError: A template fails to compile or render, or a plugin
            applies a template that does not exist.
    """
    compiled: dict[str, tuple[CompiledTemplate, bool]] = {}
    for name, template in locked.templates.items():
        try:
            compiled[name] = (ENGINE.from_string(template.value), template.each)
        except TemplateError as e:
            raise RenderError(f"failed to compile template `{name}`", template=name) from e

    out: list[str] = []
    for plugin in locked.plugins:
        if isinstance(plugin, LockedExternalPlugin):
            _render_external(plugin, compiled, out)
            logger.info("Rendered %s", plugin.name)
        else:
            _render_inline(plugin, out)
            logger.info("Inlined %s", plugin.name)
    return "".join(out)


def _render_external(
    plugin: LockedExternalPlugin,
    compiled: dict[str, tuple[CompiledTemplate, bool]],
    out: list[str],
) -> None:
    data: dict[str, Any] = {
        "name": plugin.name,
        "dir": str(plugin.dir),
        "files": [str(f) for f in plugin.files],
        "hooks": dict(plugin.hooks),
    }
    for name in plugin.apply:
        if name not in compiled:
            raise RenderError(f"unknown template `{name}`", template=name)
        template, each = compiled[name]
        if each:
            for file in plugin.files:
                out.append(_render(template, {**data, "file": str(file)}, name))
        else:
            out.append(_render(template, data, name))


def _render_inline(plugin: InlinePlugin, out: list[str]) -> None:
    data = {"name": plugin.name, "hooks": dict(plugin.hooks or {})}
    try:
        template = ENGINE.from_string(plugin.raw)
    except TemplateError as e:
        raise RenderError(
            f"failed to compile inline plugin `{plugin.name}`", template=plugin.name
        ) from e
    try:
        rendered = template.render(data)
    except TemplateError as e:
        raise RenderError(
            f"failed to render inline plugin `{plugin.name}`", template=plugin.name
        ) from e
    out.append(_terminate(rendered))


def _render(template: CompiledTemplate, data: dict[str, Any], name: str) -> str:
    try:
        return _terminate(template.render(data))
    except TemplateError as e:
        raise RenderError(f"failed to render template `{name}`", template=name) from e


def _terminate(text: str) -> str:
    return text if text.endswith("\n") else text + "\n"
