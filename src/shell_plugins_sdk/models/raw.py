"""Models for the config file as written by the user, before normalization."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .config import Shell, Template

GitProtocol = Literal["git", "https", "ssh"]


class RawPlugin(BaseModel):
    """A single ``[plugins.<name>]`` table.

    Unknown keys are kept in ``model_extra`` so they can be reported as
    warnings instead of failing validation.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)
    # Source fields, exactly one must be set
    git: str | None = None
    gist: str | None = None
    github: str | None = None
    remote: str | None = None
    local: str | None = None
    inline: str | None = None
    # Git options
    proto: GitProtocol | None = None
    branch: str | None = None
    tag: str | None = None
    rev: str | None = None
    # Plugin options
    dir: str | None = None
    uses: list[str] | None = Field(None, alias="use")
    apply: list[str] | None = None
    profiles: list[str] | None = None
    hooks: dict[str, str] | None = None


class RawConfig(BaseModel):
    """Contents of the TOML config file."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)
    shell: Shell | None = None
    matches: list[str] | None = Field(None, alias="match")
    apply: list[str] | None = None
    templates: dict[str, str | Template] = {}
    plugins: dict[str, RawPlugin] = {}
