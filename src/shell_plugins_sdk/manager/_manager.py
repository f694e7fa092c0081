"""Parallel locking of a whole config."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

from ..errors import PluginError, ShellPluginsError, SourceError
from ..fetchers import DefaultSourceLocker, install_key
from ..models.config import (
    ExternalPlugin,
    InlinePlugin,
    default_apply,
    default_matches,
    default_templates,
)
from ..models.locked import LockedConfig, LockedExternalPlugin
from ._plugin import lock_plugin

if TYPE_CHECKING:
    from collections.abc import Hashable

    from ..context import LockContext
    from ..models.config import Config, Source, Template
    from ._protocols import SourceLocker

logger = logging.getLogger(__name__)

MAX_WORKERS = 8

_Locked = Union[LockedExternalPlugin, InlinePlugin]


@dataclass
class _Group:
    """Sources sharing one install location, locked one after another.

    Each source maps to its plugins, tagged with their declaration index.
    """

    sources: dict[Source, list[tuple[int, ExternalPlugin]]] = field(default_factory=dict)


@dataclass
class _GroupResult:
    plugins: list[tuple[int, _Locked]] = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)


def lock_config(
    ctx: LockContext,
    config: Config,
    locker: SourceLocker | None = None,
) -> LockedConfig:
    """Install every source in ``config`` and resolve every plugin.

    Plugins sharing a source are installed once. Sources that install into
    the same location (one repository under different references) are locked
    one after another by a single worker; other sources install in parallel.
    The locked plugins come back in declaration order. Failures are
    collected on ``LockedConfig.errors`` instead of raised: a failed source
    drops every plugin using it, a failed plugin drops only itself.
    """
    locker = locker or DefaultSourceLocker()
    templates = {**default_templates(config.shell), **config.templates}
    matches = config.matches if config.matches is not None else default_matches(config.shell)
    apply = config.apply if config.apply is not None else default_apply()

    inline: list[tuple[int, _Locked]] = []
    groups: dict[Hashable, _Group] = {}
    index = 0
    for plugin in config.plugins:
        if not plugin.matches_profile(ctx.profile):
            logger.debug("Skipped %s (profile)", plugin.name)
            continue
        if isinstance(plugin, InlinePlugin):
            inline.append((index, plugin))
        else:
            group = groups.setdefault(install_key(plugin.source), _Group())
            group.sources.setdefault(plugin.source, []).append((index, plugin))
        index += 1

    results: list[_GroupResult] = []
    if groups:
        workers = min(MAX_WORKERS, len(groups))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(_lock_group, ctx, locker, group, matches, apply, templates)
                for group in groups.values()
            ]
            results = [f.result() for f in futures]

    plugins: list[tuple[int, _Locked]] = list(inline)
    errors: list[Exception] = []
    for result in results:
        plugins.extend(result.plugins)
        errors.extend(result.errors)
    plugins.sort(key=lambda pair: pair[0])

    return LockedConfig(
        ctx=ctx,
        plugins=[p for _, p in plugins],
        templates=templates,
        errors=errors,
    )


def _lock_group(
    ctx: LockContext,
    locker: SourceLocker,
    group: _Group,
    matches: list[str],
    apply: list[str],
    templates: dict[str, Template],
) -> _GroupResult:
    result = _GroupResult()
    for source, plugins in group.sources.items():
        try:
            locked_source = locker.lock(ctx, source)
        except (ShellPluginsError, OSError) as e:
            err = SourceError(f"failed to install source `{source}`", source=str(source))
            err.__cause__ = e
            result.errors.append(err)
            continue

        for index, plugin in plugins:
            try:
                locked = lock_plugin(ctx, locked_source, plugin, matches, apply, templates)
            except (ShellPluginsError, OSError) as e:
                err = PluginError(f"failed to install plugin `{plugin.name}`", plugin.name)
                err.__cause__ = e
                result.errors.append(err)
                continue
            result.plugins.append((index, locked))
    return result
