from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

import httpx

from ..context import LockMode
from ..errors import SourceError
from ..models.locked import LockedSource
from ._temp import TempPath

if TYPE_CHECKING:
    from ..context import LockContext
    from ..models.config import RemoteSource

logger = logging.getLogger(__name__)


def remote_dir_and_file(download_dir: Path, url: str) -> tuple[Path, Path]:
    """Where a URL is downloaded to: ``<download_dir>/<host>/<path>/<basename>``.

    An empty basename (a URL ending in ``/``) is stored as ``index``.
    """
    parts = urlsplit(url)
    if not parts.hostname:
        raise SourceError(f"URL `{url}` has no host", source=url)
    *rest, base = parts.path.split("/")[1:] or [""]
    directory = download_dir.joinpath(parts.hostname, *rest)
    return directory, directory / (base or "index")


def lock_remote(ctx: LockContext, source: RemoteSource) -> LockedSource:
    """Download a remote file unless it is already present in Normal mode."""
    directory, file = remote_dir_and_file(ctx.download_dir, source.url)

    if ctx.mode is LockMode.NORMAL and file.exists():
        logger.info("Checked %s", source.url)
        return LockedSource(dir=directory, file=file)

    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise SourceError(f"failed to create dir `{directory}`", source=source.url) from e

    with TempPath(file) as temp:
        download(source.url, temp.path)
        try:
            temp.rename()
        except OSError as e:
            raise SourceError(
                "failed to rename temporary download file", source=source.url
            ) from e
    logger.info("Fetched %s", source.url)
    return LockedSource(dir=directory, file=file)


def download(url: str, dest: Path) -> None:
    """Stream ``url`` into ``dest``, following redirects and failing on HTTP errors."""
    try:
        with httpx.stream("GET", url, follow_redirects=True, timeout=30) as response:
            response.raise_for_status()
            with dest.open("wb") as fh:
                for chunk in response.iter_bytes():
                    fh.write(chunk)
    except httpx.HTTPStatusError as e:
        raise SourceError(
            f"failed to download `{url}`: HTTP {e.response.status_code}", source=url
        ) from e
    except httpx.HTTPError as e:
        raise SourceError(f"failed to download `{url}`: {e}", source=url) from e
    except OSError as e:
        raise SourceError(f"failed to write `{dest}`", source=url) from e
