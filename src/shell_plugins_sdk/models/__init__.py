from .config import (
    Config,
    ExternalPlugin,
    GitReference,
    GitSource,
    InlinePlugin,
    LocalSource,
    Plugin,
    RemoteSource,
    Shell,
    Source,
    Template,
    default_apply,
    default_matches,
    default_templates,
)
from .locked import LockedConfig, LockedExternalPlugin, LockedPlugin, LockedSource
from .raw import RawConfig, RawPlugin

__all__ = [
    "Config",
    "ExternalPlugin",
    "GitReference",
    "GitSource",
    "InlinePlugin",
    "LocalSource",
    "LockedConfig",
    "LockedExternalPlugin",
    "LockedPlugin",
    "LockedSource",
    "Plugin",
    "RawConfig",
    "RawPlugin",
    "RemoteSource",
    "Shell",
    "Source",
    "Template",
    "default_apply",
    "default_matches",
    "default_templates",
]
