from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlsplit

from jinja2 import TemplateSyntaxError
from pydantic import ValidationError

from .._templates import ENGINE
from ..errors import ConfigError
from ..models.config import (
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
    default_templates,
)
from ..models.raw import GitProtocol, RawConfig, RawPlugin
from ._result import ValidationIssue, ValidationResult

GIST_HOST = "gist.github.com"
GITHUB_HOST = "github.com"

_PROTOCOL_PREFIX: dict[str, str] = {
    "git": "git://",
    "https": "https://",
    "ssh": "ssh://git@",
}

_GITHUB_REPOSITORY = re.compile(r"^[^/\s]+/[^/\s]+$")
_GIST_ID = re.compile(r"^(?:[^/\s]+/)?[^/\s]+$")

_DEPRECATED_PLUGIN_KEYS = {"protocol": "proto"}


def normalize_config(data: dict[str, Any]) -> tuple[Config, ValidationResult]:
    """Validate a parsed config document and convert it into a `Config`.

    Gist and GitHub sources are rewritten into Git sources. Unknown and
    deprecated keys are returned as warnings; anything else that is wrong
    raises `ConfigError`.
    """
    issues: list[ValidationIssue] = []
    try:
        raw = RawConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid config: {e}") from e

    for key in raw.model_extra or {}:
        issues.append(ValidationIssue("warning", key, f"unused config key: `{key}`"))

    templates: dict[str, Template] = {}
    for name, template in raw.templates.items():
        if isinstance(template, str):
            template = Template(value=template)
        try:
            ENGINE.from_string(template.value)
        except TemplateSyntaxError as e:
            raise ConfigError(f"failed to compile template `{name}`") from e
        templates[name] = template

    shell: Shell = raw.shell or "zsh"
    _validate_template_names(shell, raw.apply, templates)

    plugins: list[Plugin] = []
    for name, raw_plugin in raw.plugins.items():
        try:
            plugins.append(_normalize_plugin(name, raw_plugin, shell, templates, issues))
        except ConfigError as e:
            raise ConfigError(f"failed to normalize plugin `{name}`", plugin_name=name) from e

    config = Config(
        shell=shell,
        matches=raw.matches,
        apply=raw.apply,
        templates=templates,
        plugins=plugins,
    )
    return config, ValidationResult(issues=issues)


def _normalize_plugin(
    name: str,
    raw: RawPlugin,
    shell: Shell,
    templates: dict[str, Template],
    issues: list[ValidationIssue],
) -> Plugin:
    extra = dict(raw.model_extra or {})
    proto = raw.proto

    for old, new in _DEPRECATED_PLUGIN_KEYS.items():
        if old in extra and proto is None:
            value = extra.pop(old)
            if value in _PROTOCOL_PREFIX:
                issues.append(
                    ValidationIssue(
                        "warning",
                        f"plugins.{name}.{old}",
                        f"use of deprecated config key: `plugins.{name}.{old}`, "
                        f"please use `plugins.{name}.{new}` instead",
                    )
                )
                proto = value
            else:
                extra[old] = value

    for key in extra:
        issues.append(
            ValidationIssue(
                "warning",
                f"plugins.{name}.{key}",
                f"unused config key: `plugins.{name}.{key}`",
            )
        )

    reference = _reference(raw)
    sources = {
        field: getattr(raw, field)
        for field in ("git", "gist", "github", "remote", "local", "inline")
        if getattr(raw, field) is not None
    }
    if not sources:
        raise ConfigError(f"plugin `{name}` has no source fields", plugin_name=name)
    if len(sources) > 1:
        raise ConfigError(f"plugin `{name}` has multiple source fields", plugin_name=name)
    kind, value = next(iter(sources.items()))

    if kind == "inline":
        unsupported = [
            ("`proto` field is", proto is not None),
            ("`branch`, `tag`, and `rev` fields are", reference is not None),
            ("`dir` field is", raw.dir is not None),
            ("`use` field is", raw.uses is not None),
            ("`apply` field is", raw.apply is not None),
        ]
        for field, is_set in unsupported:
            if is_set:
                raise ConfigError(f"the {field} not supported by inline plugins", plugin_name=name)
        return InlinePlugin(name=name, raw=value, profiles=raw.profiles, hooks=raw.hooks)

    source = _source(kind, value, proto, reference)
    if not isinstance(source, GitSource) and reference is not None:
        raise ConfigError(
            "the `branch`, `tag`, and `rev` fields are not supported by this plugin type",
            plugin_name=name,
        )
    if proto is not None and kind not in ("gist", "github"):
        raise ConfigError(
            "the `proto` field is not supported by this plugin type", plugin_name=name
        )

    _validate_template_names(shell, raw.apply, templates)

    return ExternalPlugin(
        name=name,
        source=source,
        dir=raw.dir,
        uses=raw.uses,
        apply=raw.apply,
        profiles=raw.profiles,
        hooks=raw.hooks,
    )


def _reference(raw: RawPlugin) -> GitReference | None:
    given = [(kind, getattr(raw, kind)) for kind in ("branch", "rev", "tag")]
    given = [(kind, value) for kind, value in given if value is not None]
    if len(given) > 1:
        raise ConfigError("only one of the `branch`, `tag`, and `rev` fields may be set")
    if not given:
        return None
    kind, value = given[0]
    return GitReference(kind=kind, value=value)


def _source(
    kind: str,
    value: str,
    proto: GitProtocol | None,
    reference: GitReference | None,
) -> Source:
    if kind == "local":
        return LocalSource(dir=value)
    if kind == "remote":
        _check_url(value)
        return RemoteSource(url=value)
    if kind == "git":
        _check_url(value)
        return GitSource(url=value, reference=reference)

    prefix = _PROTOCOL_PREFIX[proto or "https"]
    if kind == "gist":
        if not _GIST_ID.match(value):
            raise ConfigError(f"failed to construct Gist URL using `{value}`")
        return GitSource(url=f"{prefix}{GIST_HOST}/{value}", reference=reference)
    if not _GITHUB_REPOSITORY.match(value):
        raise ConfigError(f"failed to parse `{value}` as a GitHub repository")
    return GitSource(url=f"{prefix}{GITHUB_HOST}/{value}", reference=reference)


def _check_url(url: str) -> None:
    parts = urlsplit(url)
    if not parts.scheme or (not parts.netloc and parts.scheme != "file"):
        raise ConfigError(f"`{url}` is not a valid URL")


def _validate_template_names(
    shell: Shell, apply: list[str] | None, templates: dict[str, Template]
) -> None:
    if apply is None:
        return
    defaults = default_templates(shell)
    for name in apply:
        if name not in defaults and name not in templates:
            raise ConfigError(f"unknown template `{name}`")
