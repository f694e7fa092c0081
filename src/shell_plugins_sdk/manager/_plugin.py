"""Resolve a single external plugin against its installed source."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from .._templates import render_string
from ..errors import PluginError, RenderError
from ..models.config import RemoteSource
from ..models.locked import LockedExternalPlugin

if TYPE_CHECKING:
    from ..context import LockContext
    from ..models.config import ExternalPlugin, Template
    from ..models.locked import LockedSource


def lock_plugin(
    ctx: LockContext,
    locked_source: LockedSource,
    plugin: ExternalPlugin,
    global_matches: list[str],
    global_apply: list[str],
    templates: dict[str, Template],
) -> LockedExternalPlugin:
    """Work out a plugin's directory and the files to load from it.

    Explicit ``use`` patterns must each match at least one file. Otherwise the
    global match patterns are tried in order and the first one that matches
    anything wins. Matching nothing is only an error when a template applied
    to the plugin renders once per file.
    """
    apply = plugin.apply if plugin.apply is not None else list(global_apply)
    hooks = dict(plugin.hooks or {})

    if isinstance(plugin.source, RemoteSource):
        if locked_source.file is None:
            raise PluginError(f"remote source for `{plugin.name}` has no file", plugin.name)
        return LockedExternalPlugin(
            name=plugin.name,
            source_dir=locked_source.dir,
            files=[locked_source.file],
            apply=apply,
            hooks=hooks,
        )

    data: dict[str, str] = {"data_dir": str(ctx.data_dir), "name": plugin.name}

    source_dir = locked_source.dir
    plugin_dir = None
    if plugin.dir is not None:
        plugin_dir = source_dir / _render(plugin.dir, data)
    directory = plugin_dir if plugin_dir is not None else source_dir
    data["dir"] = str(directory)

    files: list[Path] = []
    if plugin.uses is not None:
        for pattern in (_render(u, data) for u in plugin.uses):
            matched = match_glob(directory, pattern)
            if not matched:
                raise PluginError(
                    f"failed to find any files matching `{pattern}`", plugin.name
                )
            files.extend(f for f in matched if f not in files)
    else:
        for pattern in (_render(m, data) for m in global_matches):
            files = match_glob(directory, pattern)
            if files:
                break
        if not files and any(templates[name].each for name in apply if name in templates):
            raise PluginError(
                "failed to find any files matching any of the global match patterns "
                "and an applied template renders once per file",
                plugin.name,
            )

    return LockedExternalPlugin(
        name=plugin.name,
        source_dir=source_dir,
        plugin_dir=plugin_dir,
        files=files,
        apply=apply,
        hooks=hooks,
    )


def match_glob(directory: Path, pattern: str) -> list[Path]:
    """Entries in ``directory`` matching ``pattern``, sorted by file name."""
    try:
        matched = list(directory.glob(pattern))
    except (ValueError, NotImplementedError) as e:
        raise PluginError(f"failed to parse glob pattern `{pattern}`") from e
    for path in matched:
        if path.is_symlink() and not path.exists():
            raise PluginError(f"failed to read symlink `{path}`")
    return sorted(matched, key=lambda p: (p.name, str(p)))


def _render(template: str, data: dict[str, str]) -> str:
    try:
        return render_string(template, data)
    except RenderError as e:
        raise PluginError(f"failed to render `{template}`") from e
