from __future__ import annotations

import tomllib
from typing import TYPE_CHECKING

from ..errors import ConfigError, format_error_chain
from ._config import normalize_config
from ._result import ValidationIssue, ValidationResult

if TYPE_CHECKING:
    from pathlib import Path


def validate_config(text: str) -> ValidationResult:
    """Validate config file contents, reporting failures as issues instead of raising.

    Used by editing front-ends that only need to know whether a config is
    acceptable before saving it.
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        return ValidationResult(
            issues=[ValidationIssue("error", "", f"failed to deserialize contents as TOML: {e}")]
        )
    try:
        _, result = normalize_config(data)
    except ConfigError as e:
        path = f"plugins.{e.plugin_name}" if e.plugin_name else ""
        return ValidationResult(issues=[ValidationIssue("error", path, format_error_chain(e))])
    return result


def validate_config_file(path: Path) -> ValidationResult:
    """Load and validate a config file from disk."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return ValidationResult(
            issues=[ValidationIssue("error", str(path), f"failed to read from `{path}`: {e}")]
        )
    return validate_config(text)


__all__ = [
    "ValidationIssue",
    "ValidationResult",
    "normalize_config",
    "validate_config",
    "validate_config_file",
]
