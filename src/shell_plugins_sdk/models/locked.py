"""Models for the locked config and its persisted form."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from ..context import LockContext
from .config import InlinePlugin, Template


class LockedSource(BaseModel):
    """An installed source.

    Attributes:
        dir: The clone, download or local directory.
        file: The downloaded file, only set for remote sources.
    """

    dir: Path
    file: Path | None = None


class LockedExternalPlugin(BaseModel):
    """An external plugin resolved against its installed source."""

    kind: Literal["external"] = "external"
    name: str
    source_dir: Path
    plugin_dir: Path | None = None
    files: list[Path] = []
    apply: list[str] = []
    hooks: dict[str, str] = {}

    @property
    def dir(self) -> Path:
        """The directory the plugin lives in (``plugin_dir`` or ``source_dir``)."""
        return self.plugin_dir if self.plugin_dir is not None else self.source_dir


LockedPlugin = Annotated[LockedExternalPlugin | InlinePlugin, Field(discriminator="kind")]


class LockedConfig(BaseModel):
    """A fully resolved config, ready to render.

    Attributes:
        ctx: The context this lock was produced under.
        plugins: Locked plugins in declaration order.
        templates: Shell default templates merged with the user's.
        errors: Source and plugin errors collected while locking; never persisted.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)
    ctx: LockContext
    plugins: list[LockedPlugin] = []
    templates: dict[str, Template] = {}
    errors: list[Exception] = Field(default_factory=list, exclude=True)

    def verify(self, ctx: LockContext) -> bool:
        """Whether this lock can be reused as-is under ``ctx``."""
        from ..cache import verify

        return verify(self, ctx)
