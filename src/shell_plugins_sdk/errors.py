from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class ShellPluginsError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(ShellPluginsError):
    """Raised when the configuration document fails validation.

    Attributes:
        plugin_name: The plugin the error refers to, if applicable.
    """

    def __init__(self, message: str, plugin_name: str | None = None) -> None:
        self.plugin_name = plugin_name
        super().__init__(message)


class LoadError(ShellPluginsError):
    """Raised when reading a config or lock file from disk fails.

    Attributes:
        path: The file that could not be loaded, if applicable.
    """

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)


class SourceError(ShellPluginsError):
    """Raised when a source cannot be installed (git, download, local lookup).

    Attributes:
        source: The source (URL or directory) that failed, if applicable.
    """

    def __init__(self, message: str, source: str | None = None) -> None:
        self.source = source
        super().__init__(message)


class PluginError(ShellPluginsError):
    """Raised when a single plugin cannot be resolved against its source."""

    def __init__(self, message: str, plugin_name: str | None = None) -> None:
        self.plugin_name = plugin_name
        super().__init__(message)


class RenderError(ShellPluginsError):
    """Raised when a template fails to compile or render."""

    def __init__(self, message: str, template: str | None = None) -> None:
        self.template = template
        super().__init__(message)


class MutexError(ShellPluginsError):
    """Raised when the cross-process file lock cannot be acquired."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)


def error_chain(err: BaseException) -> list[BaseException]:
    """Return ``err`` followed by each exception that caused it."""
    chain: list[BaseException] = []
    current: BaseException | None = err
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or (
            None if current.__suppress_context__ else current.__context__
        )
    return chain


def format_error_chain(err: BaseException) -> str:
    """Format an error and its causes as ``outer\\n  due to: inner``."""
    return "\n  due to: ".join(str(e) for e in error_chain(err))
