from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from ..errors import SourceError
from ..models.config import GitSource, LocalSource, RemoteSource
from ._git import git_dir, lock_git
from ._http import lock_remote
from ._local import lock_local

if TYPE_CHECKING:
    from collections.abc import Hashable

    from ..context import LockContext
    from ..models.config import Source
    from ..models.locked import LockedSource


def lock_source(ctx: LockContext, source: Source) -> LockedSource:
    """Install a source according to ``ctx.mode`` and return where it lives.

    Raises:
        SourceError: On clone, fetch, checkout, download, or lookup failure.
    """
    if isinstance(source, GitSource):
        return lock_git(ctx, source)
    if isinstance(source, RemoteSource):
        return lock_remote(ctx, source)
    if isinstance(source, LocalSource):
        return lock_local(ctx, source)
    raise SourceError(f"Unsupported source type: {type(source)}")


def install_key(source: Source) -> Hashable:
    """A key shared by sources that install into the same location.

    Git sources differing only in their reference share a clone directory.
    """
    if isinstance(source, GitSource):
        try:
            return ("git", git_dir(Path(), source.url))
        except SourceError:
            return source
    return source


class DefaultSourceLocker:
    """Installs sources on the real filesystem and network."""

    def lock(self, ctx: LockContext, source: Source) -> LockedSource:
        return lock_source(ctx, source)
