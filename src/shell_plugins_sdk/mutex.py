"""Cross-process exclusive lock on a file or directory."""

from __future__ import annotations

import errno
import fcntl
import logging
import os
from pathlib import Path
from types import TracebackType

from .errors import MutexError

logger = logging.getLogger(__name__)

_CONTENDED = (errno.EAGAIN, errno.EACCES, errno.EWOULDBLOCK)


class FileMutex:
    """An exclusive ``flock`` held on ``path`` until released.

    ``path`` may be a directory (the config dir, usually) or a file, which is
    created if missing. The OS drops the lock if the process dies.

    Use as a context manager or call `acquire` and `release` directly.
    """

    def __init__(self, path: Path, display: Path | None = None) -> None:
        self.path = Path(path)
        self._display = display or self.path
        self._fd: int | None = None

    @classmethod
    def acquire(cls, path: Path, display: Path | None = None) -> FileMutex:
        """Open ``path`` and take the lock, waiting for another holder if needed."""
        mutex = cls(path, display)
        mutex.lock()
        return mutex

    @property
    def locked(self) -> bool:
        return self._fd is not None

    def lock(self) -> None:
        if self._fd is not None:
            return
        flags = os.O_RDONLY if self.path.is_dir() else os.O_RDONLY | os.O_CREAT
        try:
            fd = os.open(self.path, flags, 0o644)
        except OSError as e:
            raise MutexError(f"failed to open `{self.path}`", path=self.path) from e

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as e:
            if e.errno not in _CONTENDED:
                os.close(fd)
                raise MutexError(
                    f"failed to acquire file lock `{self.path}`", path=self.path
                ) from e
            logger.warning("Blocking waiting for file lock on %s", self._display)
            try:
                fcntl.flock(fd, fcntl.LOCK_EX)
            except OSError as e2:
                os.close(fd)
                raise MutexError(
                    f"failed to acquire file lock `{self.path}`", path=self.path
                ) from e2
        self._fd = fd
        logger.debug("Locked %s", self._display)

    def release(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        logger.debug("Unlocked %s", self._display)

    def __enter__(self) -> FileMutex:
        self.lock()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
