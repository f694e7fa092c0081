"""Lock and render shell plugins declared in a TOML config file."""

from ._version import __version__
from .app import load, lock, source
from .cache import needs_relock, verify
from .clean import clean
from .context import LockContext, LockMode
from .errors import (
    ConfigError,
    LoadError,
    MutexError,
    PluginError,
    RenderError,
    ShellPluginsError,
    SourceError,
    format_error_chain,
)
from .fetchers import lock_source
from .manager import lock_config
from .mutex import FileMutex
from .script import render_script
from .validation import ValidationIssue, ValidationResult, normalize_config

__all__ = [
    "ConfigError",
    "FileMutex",
    "LoadError",
    "LockContext",
    "LockMode",
    "MutexError",
    "PluginError",
    "RenderError",
    "ShellPluginsError",
    "SourceError",
    "ValidationIssue",
    "ValidationResult",
    "__version__",
    "clean",
    "format_error_chain",
    "load",
    "lock",
    "lock_config",
    "lock_source",
    "needs_relock",
    "normalize_config",
    "render_script",
    "source",
    "verify",
]
