"""End-to-end ``lock`` and ``source`` pipelines.

Both pipelines hold a `FileMutex` on the config directory for their whole
duration so concurrent shells never install into the same directories at once.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .cache import needs_relock
from .clean import clean
from .context import LockMode
from .errors import LoadError, RenderError, ShellPluginsError, format_error_chain
from .loaders import load_config, load_locked_config, write_locked_config
from .manager import lock_config
from .mutex import FileMutex
from .script import render_script

if TYPE_CHECKING:
    from .context import LockContext
    from .manager import SourceLocker
    from .models.config import Config
    from .models.locked import LockedConfig
    from .validation import ValidationIssue

logger = logging.getLogger(__name__)


def load(ctx: LockContext) -> tuple[Config, list[ValidationIssue]]:
    """Load and normalize the config file, returning it with its warnings."""
    try:
        config, result = load_config(ctx.config_file)
    except ShellPluginsError as e:
        raise LoadError("failed to load config file", path=ctx.config_file) from e
    logger.info("Loaded %s", ctx.replace_home(ctx.config_file))
    return config, result.warnings


def lock(
    ctx: LockContext,
    warnings: list[ValidationIssue] | None = None,
    locker: SourceLocker | None = None,
) -> LockedConfig:
    """Lock the config and write the lock file.

    Raises:
        ShellPluginsError: The config could not be loaded, or locking
            collected errors. The last collected error is raised and the rest
            are logged.
    """
    warnings = warnings if warnings is not None else []
    with _mutex(ctx):
        locked = _locked(ctx, warnings, locker)
        if locked.errors:
            *rest, last = locked.errors
            for err in rest:
                logger.error(format_error_chain(err))
            raise last
        warnings += clean(locked, ctx)
        _write(locked, ctx)
    _log_warnings(warnings)
    return locked


def source(
    ctx: LockContext,
    relock: bool = False,
    warnings: list[ValidationIssue] | None = None,
    locker: SourceLocker | None = None,
) -> str:
    """Return the rendered shell script, relocking only when needed.

    The existing lock file is reused unless ``relock`` is set, the context is
    in update or reinstall mode, the config file is newer than the lock file,
    the lock file cannot be read, or the lock no longer verifies. A fresh lock
    is only written when it was produced without errors.
    """
    warnings = warnings if warnings is not None else []
    with _mutex(ctx):
        fresh = True
        if relock or ctx.mode is not LockMode.NORMAL or needs_relock(ctx.config_file, ctx.lock_file):
            locked = _locked(ctx, warnings, locker)
        else:
            locked = _reuse(ctx)
            if locked is None:
                locked = _locked(ctx, warnings, locker)
            else:
                fresh = False

        try:
            script = render_script(locked)
        except RenderError as e:
            raise RenderError("failed to render source") from e

        if fresh and not locked.errors:
            warnings += clean(locked, ctx)
            _write(locked, ctx)
        else:
            for err in locked.errors:
                logger.error(format_error_chain(err))
    _log_warnings(warnings)
    return script


def _reuse(ctx: LockContext) -> LockedConfig | None:
    try:
        locked = load_locked_config(ctx.lock_file)
    except LoadError as e:
        logger.debug("Ignoring lock file: %s", format_error_chain(e))
        return None
    if not locked.verify(ctx):
        return None
    logger.debug("Unlocked %s", ctx.replace_home(ctx.lock_file))
    # Runtime-only fields are not persisted; carry over the caller's.
    return locked.model_copy(update={"ctx": ctx})


def _locked(
    ctx: LockContext,
    warnings: list[ValidationIssue],
    locker: SourceLocker | None,
) -> LockedConfig:
    config, config_warnings = load(ctx)
    warnings += config_warnings
    return lock_config(ctx, config, locker)


def _write(locked: LockedConfig, ctx: LockContext) -> None:
    try:
        write_locked_config(locked, ctx.lock_file)
    except LoadError as e:
        raise LoadError("failed to write lock file", path=ctx.lock_file) from e
    logger.info("Locked %s", ctx.replace_home(ctx.lock_file))


def _mutex(ctx: LockContext) -> FileMutex:
    try:
        ctx.config_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise LoadError(f"failed to create dir `{ctx.config_dir}`", path=ctx.config_dir) from e
    return FileMutex(ctx.config_dir, display=ctx.replace_home(ctx.config_dir))


def _log_warnings(warnings: list[ValidationIssue]) -> None:
    for warning in warnings:
        logger.warning(warning.message)
