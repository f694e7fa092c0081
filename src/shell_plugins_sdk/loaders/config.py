from __future__ import annotations

import tomllib
from typing import TYPE_CHECKING

from ..errors import LoadError
from ..validation import ValidationResult, normalize_config

if TYPE_CHECKING:
    from pathlib import Path

    from ..models.config import Config


def load_config(path: Path) -> tuple[Config, ValidationResult]:
    """Read a TOML config file and normalize it.

    Raises:
        LoadError: The file could not be read or is not valid TOML.
        ConfigError: The document does not describe a valid config.
    """
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise LoadError(f"failed to read from `{path}`", path=path) from e
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise LoadError("failed to deserialize contents as TOML", path=path) from e
    return normalize_config(data)
