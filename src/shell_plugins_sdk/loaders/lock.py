from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

import tomli_w
from pydantic import ValidationError

from ..context import LockContext
from ..errors import LoadError
from ..models.locked import LockedConfig

_BODY_KEYS = ("plugins", "templates")


def load_locked_config(path: Path) -> LockedConfig:
    """Read a lock file written by `write_locked_config`.

    The lock file has the context snapshot at the top level, followed by the
    ``plugins`` array and the ``templates`` table.
    """
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise LoadError(f"failed to read locked config from `{path}`", path=path) from e
    try:
        data = tomllib.loads(text)
        ctx = LockContext.model_validate(
            {k: v for k, v in data.items() if k not in _BODY_KEYS}
        )
        return LockedConfig(
            ctx=ctx,
            plugins=data.get("plugins", []),
            templates=data.get("templates", {}),
        )
    except (tomllib.TOMLDecodeError, ValidationError) as e:
        raise LoadError("failed to deserialize locked config", path=path) from e


def dumps_locked_config(locked: LockedConfig) -> str:
    """Serialize a locked config to TOML. Collected errors are not written."""
    data: dict[str, Any] = {k: v for k, v in locked.ctx.snapshot().items() if v is not None}
    data["plugins"] = [
        p.model_dump(mode="json", exclude_none=True) for p in locked.plugins
    ]
    data["templates"] = {
        name: t.model_dump(mode="json") for name, t in locked.templates.items()
    }
    return tomli_w.dumps(data)


def write_locked_config(locked: LockedConfig, path: Path) -> None:
    """Write the lock file atomically: temp file in the same directory, then replace."""
    try:
        text = dumps_locked_config(locked)
    except (TypeError, ValueError) as e:
        raise LoadError("failed to serialize locked config", path=path) from e
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(text, encoding="utf-8")
        tmp.replace(path)
    except OSError as e:
        raise LoadError(f"failed to write locked config to `{path}`", path=path) from e
