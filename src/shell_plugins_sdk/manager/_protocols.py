"""Protocols (ports) for the locking engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..context import LockContext
    from ..models.config import Source
    from ..models.locked import LockedSource


class SourceLocker(Protocol):
    """Installs a single source and reports where it lives.

    Called concurrently from worker threads, but never twice for equal
    sources within one lock cycle.
    """

    def lock(self, ctx: LockContext, source: Source) -> LockedSource: ...
