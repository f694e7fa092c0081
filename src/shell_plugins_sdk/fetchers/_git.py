from __future__ import annotations

import logging
import os
import subprocess
from collections import deque
from pathlib import Path
from typing import TYPE_CHECKING, Callable, TypeVar
from urllib.parse import urlsplit

from ..context import LockMode
from ..errors import SourceError
from ..models.locked import LockedSource
from ._temp import TempPath

if TYPE_CHECKING:
    from ..context import LockContext
    from ..models.config import GitReference, GitSource

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

# Fetch every branch plus the remote HEAD so the default branch can be resolved.
DEFAULT_REFSPECS = [
    "+refs/heads/*:refs/remotes/origin/*",
    "+HEAD:refs/remotes/origin/HEAD",
]

_TIMEOUT = 300


def git_dir(clone_dir: Path, url: str) -> Path:
    """The clone directory for a URL: ``<clone_dir>/<host>/<path>``."""
    parts = urlsplit(url)
    host = parts.hostname or ""
    path = parts.path.strip("/")
    if not host and not path:
        raise SourceError(f"URL `{url}` has no host", source=url)
    return clone_dir / host / path


def lock_git(ctx: LockContext, source: GitSource) -> LockedSource:
    """Clone or update a Git source and check out its reference.

    Normal mode reuses an existing clone, fetching only when the checkout
    fails. Update mode always fetches first. Reinstall mode always clones
    afresh.
    """
    directory = git_dir(ctx.clone_dir, source.url)
    label = str(source)

    if ctx.mode is LockMode.REINSTALL or not is_repository(directory):
        _install(directory, source.url, source.reference)
        logger.info("Cloned %s", label)
        return LockedSource(dir=directory)

    if ctx.mode is LockMode.UPDATE:
        fetch(directory)
        _checkout(directory, label, source.reference)
    else:
        # Any checkout failure triggers one fetch, even for a misspelt reference.
        attempt_then_refresh(
            lambda: _checkout(directory, label, source.reference),
            lambda: fetch(directory),
        )
    return LockedSource(dir=directory)


def attempt_then_refresh(attempt: Callable[[], _T], refresh: Callable[[], None]) -> _T:
    """Run ``attempt``; if it fails, run ``refresh`` and ``attempt`` exactly once more."""
    try:
        return attempt()
    except SourceError as e:
        logger.debug("Retrying after refresh: %s", e)
    refresh()
    return attempt()


def _install(directory: Path, url: str, reference: GitReference | None) -> None:
    directory.parent.mkdir(parents=True, exist_ok=True)
    with TempPath(directory) as temp:
        clone(url, temp.path)
        checkout(temp.path, resolve(temp.path, reference))
        submodule_update(temp.path)
        try:
            temp.rename()
        except OSError as e:
            raise SourceError(
                f"failed to rename temporary clone directory to `{directory}`", source=url
            ) from e


def _checkout(directory: Path, label: str, reference: GitReference | None) -> None:
    current = head(directory)
    expected = resolve(directory, reference)
    if current == expected:
        logger.info("Checked %s", label)
        return
    checkout(directory, expected)
    submodule_update(directory)
    logger.info("Updated %s (%s to %s)", label, (current or "none")[:7], expected[:7])


# --- git commands ---


def run_git(args: list[str], cwd: Path | None = None) -> str:
    """Run a git command and return its stripped stdout.

    Raises:
        SourceError: git is missing, timed out, or exited non-zero.
    """
    cmd = ["git"]
    if cwd is not None:
        cmd += ["-C", str(cwd)]
    cmd += args
    env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=_TIMEOUT, env=env)
    except subprocess.TimeoutExpired as e:
        raise SourceError(f"git {args[0]} timed out") from e
    except FileNotFoundError as e:
        raise SourceError("git is not installed or not in PATH") from e
    if result.returncode != 0:
        raise SourceError(f"git {args[0]} failed: {result.stderr.strip()}")
    return result.stdout.strip()


def is_repository(directory: Path) -> bool:
    """Whether ``directory`` is the top level of a Git working tree."""
    if not directory.is_dir():
        return False
    try:
        toplevel = run_git(["rev-parse", "--show-toplevel"], cwd=directory)
    except SourceError:
        return False
    return Path(toplevel).resolve() == directory.resolve()


def clone(url: str, directory: Path) -> None:
    """Initialise a repository at ``directory`` and fetch ``url`` into it as ``origin``."""
    try:
        run_git(["init", "--quiet", str(directory)])
        run_git(["remote", "add", "origin", url], cwd=directory)
        fetch(directory)
    except SourceError as e:
        raise SourceError(f"failed to git clone `{url}`", source=url) from e


def fetch(directory: Path) -> None:
    try:
        run_git(["fetch", "--quiet", "--tags", "--force", "origin", *DEFAULT_REFSPECS], cwd=directory)
    except SourceError as e:
        raise SourceError("failed to git fetch") from e


def head(directory: Path) -> str | None:
    """The commit HEAD points to, or None for an unborn branch."""
    try:
        return run_git(["rev-parse", "--verify", "--quiet", "HEAD^{commit}"], cwd=directory)
    except SourceError:
        return None


def checkout(directory: Path, oid: str) -> None:
    """Move HEAD, the index and the working tree to ``oid``."""
    try:
        run_git(["reset", "--quiet", "--hard", oid], cwd=directory)
    except SourceError as e:
        raise SourceError(f"failed to checkout `{oid}`") from e


def submodule_update(directory: Path) -> None:
    """Initialise and update submodules, breadth-first through nested submodules."""
    todo: deque[Path] = deque([directory])
    try:
        while todo:
            repo = todo.popleft()
            if not (repo / ".gitmodules").is_file():
                continue
            run_git(["submodule", "update", "--init", "--quiet"], cwd=repo)
            todo.extend(repo / p for p in _submodule_paths(repo))
    except SourceError as e:
        raise SourceError("failed to recursively update submodules") from e


def _submodule_paths(repo: Path) -> list[str]:
    try:
        out = run_git(
            ["config", "--file", ".gitmodules", "--get-regexp", r"^submodule\..*\.path$"],
            cwd=repo,
        )
    except SourceError:
        return []
    return [line.split(" ", 1)[1] for line in out.splitlines() if " " in line]


# --- reference resolution ---


def resolve(directory: Path, reference: GitReference | None) -> str:
    """Resolve a reference (None meaning the remote HEAD) to a commit id."""
    if reference is None:
        return resolve_head(directory)
    if reference.kind == "branch":
        return resolve_branch(directory, reference.value)
    if reference.kind == "rev":
        return resolve_rev(directory, reference.value)
    return resolve_tag(directory, reference.value)


def _peel(directory: Path, name: str) -> str:
    return run_git(["rev-parse", "--verify", "--quiet", f"{name}^{{commit}}"], cwd=directory)


def resolve_head(directory: Path) -> str:
    try:
        return _peel(directory, "refs/remotes/origin/HEAD")
    except SourceError as e:
        raise SourceError("failed to find remote HEAD") from e


def resolve_branch(directory: Path, branch: str) -> str:
    try:
        return _peel(directory, f"refs/remotes/origin/{branch}")
    except SourceError as e:
        raise SourceError(f"failed to find branch `{branch}`") from e


def resolve_rev(directory: Path, rev: str) -> str:
    try:
        return _peel(directory, rev)
    except SourceError as e:
        raise SourceError(f"failed to find revision `{rev}`") from e


def resolve_tag(directory: Path, tag: str) -> str:
    try:
        return _peel(directory, f"refs/tags/{tag}")
    except SourceError as e:
        raise SourceError(f"failed to find tag `{tag}`") from e
