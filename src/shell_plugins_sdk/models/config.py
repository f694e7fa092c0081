"""Normalized configuration models and per-shell defaults."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

Shell = Literal["bash", "zsh"]


class Template(BaseModel):
    """A template body and whether it renders once per matched file."""

    model_config = ConfigDict(frozen=True)
    value: str
    each: bool = False


class GitReference(BaseModel):
    """A Git reference to check out: a branch tip, a revision, or a tag."""

    model_config = ConfigDict(frozen=True)
    kind: Literal["branch", "rev", "tag"]
    value: str

    def __str__(self) -> str:
        return self.value


class GitSource(BaseModel):
    """A clonable Git repository. ``reference=None`` means the remote HEAD."""

    model_config = ConfigDict(frozen=True)
    kind: Literal["git"] = "git"
    url: str
    reference: GitReference | None = None

    def __str__(self) -> str:
        if self.reference is None:
            return self.url
        return f"{self.url}@{self.reference}"


class RemoteSource(BaseModel):
    """A single downloadable file."""

    model_config = ConfigDict(frozen=True)
    kind: Literal["remote"] = "remote"
    url: str

    def __str__(self) -> str:
        return self.url


class LocalSource(BaseModel):
    """A local directory; the path may contain a glob."""

    model_config = ConfigDict(frozen=True)
    kind: Literal["local"] = "local"
    dir: Path

    def __str__(self) -> str:
        return str(self.dir)


# Structural equality (and hashing) of these models is the dedup key.
Source = Annotated[GitSource | RemoteSource | LocalSource, Field(discriminator="kind")]


def _matches_profile(profiles: list[str] | None, profile: str | None) -> bool:
    if not profiles:
        return True
    return profile is not None and profile in profiles


class ExternalPlugin(BaseModel):
    """A plugin whose files come from a Git, Remote or Local source."""

    model_config = ConfigDict(populate_by_name=True)
    kind: Literal["external"] = "external"
    name: str
    source: Source
    dir: str | None = None
    uses: list[str] | None = Field(None, alias="use")
    apply: list[str] | None = None
    profiles: list[str] | None = None
    hooks: dict[str, str] | None = None

    def matches_profile(self, profile: str | None) -> bool:
        """Whether this plugin is active under ``profile``."""
        return _matches_profile(self.profiles, profile)


class InlinePlugin(BaseModel):
    """A plugin whose body is a raw template in the config file."""

    model_config = ConfigDict(populate_by_name=True)
    kind: Literal["inline"] = "inline"
    name: str
    raw: str
    profiles: list[str] | None = None
    hooks: dict[str, str] | None = None

    def matches_profile(self, profile: str | None) -> bool:
        """Whether this plugin is active under ``profile``."""
        return _matches_profile(self.profiles, profile)


Plugin = Annotated[ExternalPlugin | InlinePlugin, Field(discriminator="kind")]


class Config(BaseModel):
    """The validated user configuration.

    Attributes:
        shell: The shell flavour; selects default match patterns and templates.
        matches: Global file match patterns, or None for the shell defaults.
        apply: Global template names to apply, or None for ``["source"]``.
        templates: User-defined templates, merged over the shell defaults when locking.
        plugins: Plugins in declaration order.
    """

    model_config = ConfigDict(populate_by_name=True)
    shell: Shell = "zsh"
    matches: list[str] | None = Field(None, alias="match")
    apply: list[str] | None = None
    templates: dict[str, Template] = Field(default_factory=dict)
    plugins: list[Plugin] = Field(default_factory=list)


# --- per-shell defaults ---

_SOURCE_TEMPLATE = (
    '{% if "pre" in hooks %}{{ hooks.pre }}\n{% endif %}'
    'source "{{ file }}"'
    '{% if "post" in hooks %}\n{{ hooks.post }}{% endif %}'
)


def default_matches(shell: Shell) -> list[str]:
    """File patterns tried, in priority order, when a plugin declares no ``use``."""
    if shell == "bash":
        return [
            "{{ name }}.plugin.bash",
            "{{ name }}.plugin.sh",
            "{{ name }}.bash",
            "{{ name }}.sh",
            "*.plugin.bash",
            "*.plugin.sh",
            "*.bash",
            "*.sh",
        ]
    return [
        "{{ name }}.plugin.zsh",
        "{{ name }}.zsh",
        "{{ name }}.sh",
        "{{ name }}.zsh-theme",
        "*.plugin.zsh",
        "*.zsh",
        "*.sh",
        "*.zsh-theme",
    ]


def default_templates(shell: Shell) -> dict[str, Template]:
    """Templates available to every config of the given shell."""
    templates = {"PATH": Template(value='export PATH="{{ dir }}:$PATH"')}
    if shell == "zsh":
        templates["path"] = Template(value='path=( "{{ dir }}" $path )')
        templates["fpath"] = Template(value='fpath=( "{{ dir }}" $fpath )')
    templates["source"] = Template(value=_SOURCE_TEMPLATE, each=True)
    return templates


def default_apply() -> list[str]:
    return ["source"]
