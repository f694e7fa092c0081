"""Decide whether a persisted lock can be reused."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .models.locked import LockedExternalPlugin

if TYPE_CHECKING:
    from pathlib import Path

    from .context import LockContext
    from .models.locked import LockedConfig

logger = logging.getLogger(__name__)


def verify(locked: LockedConfig, ctx: LockContext) -> bool:
    """Whether ``locked`` is still valid under ``ctx``.

    The context snapshot must be identical and every directory and file an
    external plugin refers to must still exist.
    """
    if locked.ctx.snapshot() != ctx.snapshot():
        logger.debug("Lock context differs from the current context")
        return False
    for plugin in locked.plugins:
        if not isinstance(plugin, LockedExternalPlugin):
            continue
        if not plugin.source_dir.exists():
            logger.debug("Missing source dir %s", plugin.source_dir)
            return False
        if plugin.plugin_dir is not None and not plugin.plugin_dir.exists():
            logger.debug("Missing plugin dir %s", plugin.plugin_dir)
            return False
        for file in plugin.files:
            if not file.exists():
                logger.debug("Missing file %s", file)
                return False
    return True


def needs_relock(config_file: Path, lock_file: Path) -> bool:
    """Whether the config file was modified after the lock file was written.

    A missing lock file always needs relocking; a missing config file never
    forces it (loading the config reports that instead).
    """
    try:
        lock_mtime = lock_file.stat().st_mtime
    except OSError:
        return True
    try:
        config_mtime = config_file.stat().st_mtime
    except OSError:
        return False
    return config_mtime > lock_mtime
