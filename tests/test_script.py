from pathlib import Path

import pytest

from shell_plugins_sdk.context import LockContext
from shell_plugins_sdk.errors import RenderError
from shell_plugins_sdk.models.config import InlinePlugin, Template, default_templates
from shell_plugins_sdk.models.locked import LockedConfig, LockedExternalPlugin
from shell_plugins_sdk.script import render_script


def _render(plugins, templates=None, shell="zsh") -> str:
    locked = LockedConfig(
        ctx=LockContext.testing(Path("/data")),
        plugins=plugins,
        templates={**default_templates(shell), **(templates or {})},
    )
    return render_script(locked)


def _plugin(**fields) -> LockedExternalPlugin:
    fields.setdefault("name", "test")
    fields.setdefault("source_dir", Path("/repos/test"))
    fields.setdefault("apply", ["source"])
    return LockedExternalPlugin(**fields)


def test_empty():
    assert _render([]) == ""


def test_source_each_file():
    plugin = _plugin(files=[Path("/repos/test/a.zsh"), Path("/repos/test/b.zsh")])
    assert _render([plugin]) == 'source "/repos/test/a.zsh"\nsource "/repos/test/b.zsh"\n'


def test_source_with_hooks():
    plugin = _plugin(files=[Path("/repos/test/a.zsh")], hooks={"pre": "pre", "post": "post"})
    assert _render([plugin]) == 'pre\nsource "/repos/test/a.zsh"\npost\n'


def test_each_template_with_no_files_renders_nothing():
    assert _render([_plugin(files=[])]) == ""


def test_per_plugin_templates_use_plugin_dir():
    plugin = _plugin(
        plugin_dir=Path("/repos/test/functions"),
        files=[],
        apply=["PATH", "fpath"],
    )
    assert _render([plugin]) == (
        'export PATH="/repos/test/functions:$PATH"\nfpath=( "/repos/test/functions" $fpath )\n'
    )


def test_apply_order_is_kept():
    plugin = _plugin(files=[Path("/repos/test/a.zsh")], apply=["source", "PATH"])
    assert _render([plugin]) == 'source "/repos/test/a.zsh"\nexport PATH="/repos/test:$PATH"\n'


def test_trailing_newline_not_doubled():
    templates = {"echo": Template(value="echo {{ name }}\n")}
    assert _render([_plugin(apply=["echo"])], templates) == "echo test\n"


def test_template_sees_files_and_name():
    templates = {"count": Template(value="{{ name }}: {{ files | length }}")}
    plugin = _plugin(files=[Path("/a"), Path("/b")], apply=["count"])
    assert _render([plugin], templates) == "test: 2\n"


def test_inline_plugins_render_raw_body():
    plugins = [
        InlinePlugin(name="first", raw="echo first"),
        _plugin(files=[Path("/repos/test/a.zsh")]),
        InlinePlugin(name="last", raw="echo {{ name }}\n"),
    ]
    assert _render(plugins) == 'echo first\nsource "/repos/test/a.zsh"\necho last\n'


def test_undefined_variable_is_an_error():
    templates = {"bad": Template(value="{{ nope }}")}
    with pytest.raises(RenderError, match="failed to render template `bad`"):
        _render([_plugin(apply=["bad"])], templates)


def test_template_that_does_not_compile():
    templates = {"bad": Template(value="{% if %}")}
    with pytest.raises(RenderError, match="failed to compile template `bad`"):
        _render([], templates)


def test_inline_undefined_variable_is_an_error():
    with pytest.raises(RenderError, match="failed to render inline plugin `x`"):
        _render([InlinePlugin(name="x", raw="{{ nope }}")])


def test_unknown_applied_template():
    with pytest.raises(RenderError, match="unknown template `nope`"):
        _render([_plugin(apply=["nope"])])
