from __future__ import annotations

import shutil
from pathlib import Path
from types import TracebackType


class TempPath:
    """A temporary sibling of a target path that is renamed into place on success.

    The temporary name is deterministic (``~<name>`` next to the target) so a
    crashed install leaves at most one stale temporary path, which the next
    install removes before starting.
    """

    def __init__(self, target: Path) -> None:
        self.target = target
        self.path = target.parent / f"~{target.name}"
        self._renamed = False
        _remove(self.path)

    def __enter__(self) -> TempPath:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self._renamed:
            _remove(self.path)

    def rename(self) -> None:
        """Replace the target with the temporary path."""
        if self._renamed:
            return
        _remove(self.target)
        self.path.replace(self.target)
        self._renamed = True


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()
