import subprocess
from pathlib import Path

import pytest


def git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", "-C", str(repo), *args], capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


def commit(repo: Path, files: dict[str, str], message: str) -> str:
    """Write ``files`` into ``repo``, commit them and return the new commit id."""
    for name, content in files.items():
        path = repo / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    git(repo, "add", ".")
    git(repo, "commit", "--quiet", "-m", message)
    return git(repo, "rev-parse", "HEAD")


def make_repo(repo: Path, files: dict[str, str]) -> Path:
    """Initialise a repository on branch ``main`` with ``files`` as its first commit."""
    repo.mkdir(parents=True)
    subprocess.run(
        ["git", "init", "--quiet", "-b", "main", str(repo)], capture_output=True, check=True
    )
    git(repo, "config", "user.email", "t@t.com")
    git(repo, "config", "user.name", "T")
    commit(repo, files, "init")
    return repo


@pytest.fixture
def upstream(tmp_path: Path) -> Path:
    """A local Git repository on branch ``main`` with one commit."""
    return make_repo(
        tmp_path / "upstream" / "test-plugin", {"test-plugin.plugin.zsh": "echo test\n"}
    )
