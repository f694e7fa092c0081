"""Remove installed sources that the current lock no longer refers to."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from .models.locked import LockedExternalPlugin
from .validation import ValidationIssue

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .context import LockContext
    from .models.locked import LockedConfig

logger = logging.getLogger(__name__)


def clean(locked: LockedConfig, ctx: LockContext) -> list[ValidationIssue]:
    """Delete everything under the clone and download dirs that is not in use.

    A root is only swept when it lives inside ``ctx.data_dir``. Anything in
    the clone dir that is neither a source dir nor an ancestor of one is
    removed; source dirs are not descended into. In the download dir only
    locked files and their ancestors survive.

    Returns:
        One warning per path that could not be removed.
    """
    source_dirs: set[Path] = set()
    files: set[Path] = set()
    for plugin in locked.plugins:
        if isinstance(plugin, LockedExternalPlugin):
            source_dirs.add(plugin.source_dir)
            files.update(plugin.files)

    warnings: list[ValidationIssue] = []
    if _is_managed(ctx.clone_dir, ctx):
        warnings += _sweep(ctx.clone_dir, source_dirs, _ancestors(source_dirs), ctx)
    if _is_managed(ctx.download_dir, ctx):
        warnings += _sweep(ctx.download_dir, files, _ancestors(files), ctx)
    return warnings


def _is_managed(root: Path, ctx: LockContext) -> bool:
    return root.is_dir() and root.is_relative_to(ctx.data_dir)


def _ancestors(paths: Iterable[Path]) -> set[Path]:
    """Every path plus all of its parents."""
    out: set[Path] = set()
    for path in paths:
        out.add(path)
        out.update(path.parents)
    return out


def _sweep(
    root: Path,
    keep: set[Path],
    parents: set[Path],
    ctx: LockContext,
) -> list[ValidationIssue]:
    warnings: list[ValidationIssue] = []
    for dirpath, dirnames, filenames in os.walk(root):
        here = Path(dirpath)
        descend = []
        for name in dirnames:
            path = here / name
            if path in keep:
                continue
            if path in parents and not path.is_symlink():
                descend.append(name)
                continue
            warnings += _remove(path, ctx)
        dirnames[:] = descend
        for name in filenames:
            path = here / name
            if path not in keep and path not in parents:
                warnings += _remove(path, ctx)
    return warnings


def _remove(path: Path, ctx: LockContext) -> list[ValidationIssue]:
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except OSError as e:
        return [
            ValidationIssue(
                "warning", str(path), f"failed to remove `{ctx.replace_home(path)}`: {e}"
            )
        ]
    logger.info("Removed %s", ctx.replace_home(path))
    return []
