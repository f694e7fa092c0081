"""Locking API: install sources and resolve plugins for a whole config."""

from __future__ import annotations

from ._in_memory import InMemorySourceLocker
from ._manager import MAX_WORKERS, lock_config
from ._plugin import lock_plugin, match_glob
from ._protocols import SourceLocker

__all__ = [
    "MAX_WORKERS",
    "InMemorySourceLocker",
    "SourceLocker",
    "lock_config",
    "lock_plugin",
    "match_glob",
]
