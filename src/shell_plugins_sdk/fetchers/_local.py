from __future__ import annotations

import glob
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from ..errors import SourceError
from ..models.locked import LockedSource

if TYPE_CHECKING:
    from ..context import LockContext
    from ..models.config import LocalSource

logger = logging.getLogger(__name__)


def lock_local(ctx: LockContext, source: LocalSource) -> LockedSource:
    """Check that a local directory exists. Nothing is written.

    A path that is not an existing directory is treated as a glob and must
    match exactly one directory.
    """
    directory = ctx.expand_tilde(source.dir)

    if directory.is_dir():
        logger.info("Checked %s", ctx.replace_home(directory))
        return LockedSource(dir=directory)

    matches = sorted(Path(p) for p in glob.glob(str(directory)) if Path(p).is_dir())
    if len(matches) != 1:
        raise SourceError(
            f"`{directory}` matches {len(matches)} directories", source=str(source.dir)
        )
    logger.info("Checked %s", ctx.replace_home(matches[0]))
    return LockedSource(dir=matches[0])
