"""In-memory source locker for testing (no network, no git)."""

from __future__ import annotations

import hashlib
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING

from ..errors import SourceError
from ..models.config import RemoteSource
from ..models.locked import LockedSource

if TYPE_CHECKING:
    from ..context import LockContext
    from ..models.config import Source


class InMemorySourceLocker:
    """Creates a directory per source under ``root`` and records every call.

    Args:
        root: Where fake source directories are created.
        files: Source string -> file names to create in its directory.
        delays: Source string -> seconds to sleep before returning, to
            simulate out-of-order completion.
        failures: Source strings whose install raises `SourceError`.
    """

    def __init__(
        self,
        root: Path,
        files: dict[str, list[str]] | None = None,
        delays: dict[str, float] | None = None,
        failures: set[str] | None = None,
    ) -> None:
        self._root = Path(root)
        self._files = dict(files or {})
        self._delays = dict(delays or {})
        self._failures = set(failures or ())
        self._mutex = threading.Lock()
        self.calls: list[Source] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def lock(self, ctx: LockContext, source: Source) -> LockedSource:
        key = str(source)
        with self._mutex:
            self.calls.append(source)
        delay = self._delays.get(key)
        if delay:
            time.sleep(delay)
        if key in self._failures:
            raise SourceError(f"simulated failure for `{key}`", source=key)

        directory = self._root / hashlib.sha256(key.encode()).hexdigest()[:12]
        directory.mkdir(parents=True, exist_ok=True)
        for name in self._files.get(key, []):
            (directory / name).write_text(f"# {name}\n", encoding="utf-8")
        if isinstance(source, RemoteSource):
            file = directory / (key.rstrip("/").rsplit("/", 1)[-1] or "index")
            file.write_text(f"# {key}\n", encoding="utf-8")
            return LockedSource(dir=directory, file=file)
        return LockedSource(dir=directory)
