"""Runtime context shared by every locking operation."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ._version import __version__


class LockMode(str, Enum):
    """Behaviour when locking a config file."""

    NORMAL = "normal"  # apply changed configuration, reuse installed sources
    UPDATE = "update"  # also fetch the latest of every source
    REINSTALL = "reinstall"  # also discard and reinstall every source


class LockContext(BaseModel):
    """Resolved paths, version and profile for one invocation.

    The serialized fields form the snapshot embedded in the lock file; a lock
    file is only reused when its snapshot equals the current context.

    Attributes:
        version: Version of this package that produced the lock.
        home: The user's home directory, used to expand ``~``.
        config_dir: Directory holding the config file and the mutex sentinel.
        data_dir: Root of all managed data.
        config_file: The TOML configuration file.
        clone_dir: Where Git sources are cloned (defaults to ``data_dir/repos``).
        download_dir: Where remote files are downloaded (defaults to ``data_dir/downloads``).
        profile: The active profile, if any.
        lock_file: The lock artifact path (defaults to ``config_file`` with ``.lock``).
        mode: The lock mode for this invocation.
    """

    model_config = ConfigDict(populate_by_name=True)

    version: str = __version__
    home: Path
    config_dir: Path
    data_dir: Path
    config_file: Path
    clone_dir: Path
    download_dir: Path
    profile: str | None = None

    lock_file: Path = Field(exclude=True)
    mode: LockMode = Field(LockMode.NORMAL, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _apply_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if data.get("data_dir") is not None:
            data_dir = Path(data["data_dir"])
            if data.get("clone_dir") is None:
                data["clone_dir"] = data_dir / "repos"
            if data.get("download_dir") is None:
                data["download_dir"] = data_dir / "downloads"
        if data.get("lock_file") is None and data.get("config_file") is not None:
            data["lock_file"] = Path(data["config_file"]).with_suffix(".lock")
        return data

    @classmethod
    def testing(cls, root: Path, **overrides: object) -> LockContext:
        """Build a context rooted entirely inside ``root``."""
        fields: dict[str, object] = {
            "home": Path("/"),
            "config_dir": root,
            "data_dir": root,
            "config_file": root / "plugins.toml",
            "lock_file": root / "plugins.lock",
            "clone_dir": root / "repos",
            "download_dir": root / "downloads",
            "profile": "profile",
        }
        fields.update(overrides)
        return cls.model_validate(fields)

    def snapshot(self) -> dict[str, object]:
        """The fields that decide whether a persisted lock is still valid."""
        return self.model_dump(mode="json")

    def expand_tilde(self, path: Path) -> Path:
        """Expand a leading ``~`` against the configured home directory."""
        parts = path.parts
        if parts and parts[0] == "~":
            return self.home.joinpath(*parts[1:])
        return path

    def replace_home(self, path: Path) -> Path:
        """Replace the home directory prefix with ``~`` for display."""
        try:
            return Path("~") / path.relative_to(self.home)
        except ValueError:
            return path
