"""Tests for the parallel orchestrator and per-plugin file resolution."""

from pathlib import Path

import pytest
from conftest import git

from shell_plugins_sdk.context import LockContext
from shell_plugins_sdk.errors import PluginError, SourceError, format_error_chain
from shell_plugins_sdk.fetchers import git_dir
from shell_plugins_sdk.manager import InMemorySourceLocker, lock_config, lock_plugin, match_glob
from shell_plugins_sdk.models.config import (
    Config,
    ExternalPlugin,
    GitReference,
    GitSource,
    InlinePlugin,
    LocalSource,
    RemoteSource,
    Template,
    default_matches,
    default_templates,
)
from shell_plugins_sdk.models.locked import LockedExternalPlugin, LockedSource


def _external(name: str, url: str, **fields) -> ExternalPlugin:
    return ExternalPlugin(name=name, source=GitSource(url=url), **fields)


# --- lock_config ---


def test_empty_config(tmp_path):
    ctx = LockContext.testing(tmp_path)
    locked = lock_config(ctx, Config(), InMemorySourceLocker(tmp_path / "src"))
    assert locked.plugins == []
    assert locked.errors == []
    assert locked.templates == default_templates("zsh")


def test_templates_merge_user_over_defaults(tmp_path):
    ctx = LockContext.testing(tmp_path)
    config = Config(
        shell="bash",
        templates={"source": Template(value="x {{ file }}", each=True), "extra": Template(value="y")},
    )
    locked = lock_config(ctx, config, InMemorySourceLocker(tmp_path / "src"))
    assert set(locked.templates) == {"PATH", "source", "extra"}
    assert locked.templates["source"].value == "x {{ file }}"


def test_sources_are_installed_once(tmp_path):
    ctx = LockContext.testing(tmp_path)
    locker = InMemorySourceLocker(
        tmp_path / "src",
        files={"https://example.com/one": ["one.zsh"], "https://example.com/two": ["two.zsh"]},
    )
    config = Config(
        plugins=[
            _external("a", "https://example.com/one"),
            _external("b", "https://example.com/two"),
            _external("c", "https://example.com/one"),
            _external("d", "https://example.com/two"),
        ]
    )
    locked = lock_config(ctx, config, locker)
    assert locker.call_count == 2
    assert {str(s) for s in locker.calls} == {"https://example.com/one", "https://example.com/two"}
    assert [p.name for p in locked.plugins] == ["a", "b", "c", "d"]
    assert locked.errors == []


def test_declaration_order_survives_out_of_order_completion(tmp_path):
    ctx = LockContext.testing(tmp_path)
    urls = [f"https://example.com/{i}" for i in range(10)]
    locker = InMemorySourceLocker(
        tmp_path / "src",
        files={url: [f"p{i}.zsh"] for i, url in enumerate(urls)},
        delays={url: 0.01 * (10 - i) for i, url in enumerate(urls)},
    )
    config = Config(
        plugins=[
            InlinePlugin(name="first", raw="echo first"),
            *[_external(f"p{i}", url) for i, url in enumerate(urls)],
            InlinePlugin(name="last", raw="echo last"),
        ]
    )
    locked = lock_config(ctx, config, locker)
    assert locked.errors == []
    assert [p.name for p in locked.plugins] == ["first", *[f"p{i}" for i in range(10)], "last"]
    assert [p.files[0].name for p in locked.plugins[1:-1]] == [f"p{i}.zsh" for i in range(10)]


def test_profile_filtering(tmp_path):
    locker = InMemorySourceLocker(tmp_path / "src", files={"https://example.com/w": ["w.zsh"]})
    config = Config(
        plugins=[
            InlinePlugin(name="always", raw="echo"),
            InlinePlugin(name="home", raw="echo", profiles=["home"]),
            _external("work", "https://example.com/w", profiles=["work"]),
        ]
    )

    locked = lock_config(LockContext.testing(tmp_path, profile="work"), config, locker)
    assert [p.name for p in locked.plugins] == ["always", "work"]

    locked = lock_config(LockContext.testing(tmp_path, profile=None), config, locker)
    assert [p.name for p in locked.plugins] == ["always"]
    assert locker.call_count == 1


def test_empty_profiles_list_always_passes(tmp_path):
    config = Config(plugins=[InlinePlugin(name="x", raw="echo", profiles=[])])
    for profile in ("work", None):
        ctx = LockContext.testing(tmp_path, profile=profile)
        locked = lock_config(ctx, config, InMemorySourceLocker(tmp_path / "src"))
        assert [p.name for p in locked.plugins] == ["x"]


def test_one_repository_under_two_references(tmp_path, upstream):
    git(upstream, "tag", "v1")
    url = f"file://{upstream}"
    config = Config(
        plugins=[
            _external("head", url, use=["*.zsh"]),
            ExternalPlugin(
                name="tagged",
                source=GitSource(url=url, reference=GitReference(kind="tag", value="v1")),
                use=["*.zsh"],
            ),
        ]
    )
    ctx = LockContext.testing(tmp_path / "data")
    locked = lock_config(ctx, config)
    assert locked.errors == []
    assert [p.name for p in locked.plugins] == ["head", "tagged"]
    assert locked.plugins[0].source_dir == locked.plugins[1].source_dir
    assert locked.plugins[0].source_dir == git_dir(ctx.clone_dir, url)


def test_sources_sharing_a_clone_dir_lock_in_one_worker(tmp_path):
    ctx = LockContext.testing(tmp_path)
    url = "https://example.com/repo"
    tagged = GitSource(url=url, reference=GitReference(kind="tag", value="v1"))
    locker = InMemorySourceLocker(
        tmp_path / "src",
        files={url: ["a.zsh"], f"{url}@v1": ["a.zsh"]},
    )
    config = Config(
        plugins=[
            _external("head", url),
            ExternalPlugin(name="tagged", source=tagged),
        ]
    )
    locked = lock_config(ctx, config, locker)
    assert locked.errors == []
    assert locker.calls == [GitSource(url=url), tagged]


def test_failed_source_fails_its_whole_group(tmp_path):
    ctx = LockContext.testing(tmp_path)
    locker = InMemorySourceLocker(
        tmp_path / "src",
        files={"https://example.com/ok": ["ok.zsh"]},
        failures={"https://example.com/bad"},
    )
    config = Config(
        plugins=[
            _external("bad1", "https://example.com/bad"),
            _external("ok", "https://example.com/ok"),
            _external("bad2", "https://example.com/bad"),
        ]
    )
    locked = lock_config(ctx, config, locker)
    assert [p.name for p in locked.plugins] == ["ok"]
    assert len(locked.errors) == 1
    assert isinstance(locked.errors[0], SourceError)
    assert format_error_chain(locked.errors[0]) == (
        "failed to install source `https://example.com/bad`\n"
        "  due to: simulated failure for `https://example.com/bad`"
    )


def test_failed_plugin_fails_only_itself(tmp_path):
    ctx = LockContext.testing(tmp_path)
    locker = InMemorySourceLocker(tmp_path / "src", files={"https://example.com/a": ["a.zsh"]})
    config = Config(
        plugins=[
            _external("a", "https://example.com/a"),
            _external("b", "https://example.com/a", use=["missing.zsh"]),
        ]
    )
    locked = lock_config(ctx, config, locker)
    assert [p.name for p in locked.plugins] == ["a"]
    assert str(locked.errors[0]) == "failed to install plugin `b`"


def test_remote_plugin_uses_downloaded_file(tmp_path):
    ctx = LockContext.testing(tmp_path)
    locker = InMemorySourceLocker(tmp_path / "src")
    config = Config(
        plugins=[ExternalPlugin(name="r", source=RemoteSource(url="https://example.com/r.zsh"))]
    )
    locked = lock_config(ctx, config, locker)
    plugin = locked.plugins[0]
    assert plugin.plugin_dir is None
    assert [f.name for f in plugin.files] == ["r.zsh"]


def test_local_plugins_are_grouped_by_directory(tmp_path):
    ctx = LockContext.testing(tmp_path)
    locker = InMemorySourceLocker(tmp_path / "src")
    config = Config(
        plugins=[
            ExternalPlugin(name="a", source=LocalSource(dir="/plugins"), apply=["PATH"]),
            ExternalPlugin(name="b", source=LocalSource(dir="/plugins"), apply=["PATH"]),
        ]
    )
    locked = lock_config(ctx, config, locker)
    assert locker.call_count == 1
    assert locked.errors == []


# --- lock_plugin ---


def _source_dir(tmp_path: Path, *files: str) -> LockedSource:
    root = tmp_path / "source"
    root.mkdir()
    for name in files:
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("")
    return LockedSource(dir=root)


def _lock(tmp_path, source, plugin, apply=None):
    return lock_plugin(
        LockContext.testing(tmp_path),
        source,
        plugin,
        default_matches("zsh"),
        apply or ["source"],
        default_templates("zsh"),
    )


def test_first_matching_global_pattern_wins(tmp_path):
    source = _source_dir(tmp_path, "test.plugin.zsh", "test.zsh", "other.zsh")
    locked = _lock(tmp_path, source, _external("test", "https://example.com/x"))
    assert [f.name for f in locked.files] == ["test.plugin.zsh"]
    assert locked.apply == ["source"]
    assert locked.hooks == {}


def test_wildcard_global_pattern(tmp_path):
    source = _source_dir(tmp_path, "b.zsh", "a.zsh", "README.md")
    locked = _lock(tmp_path, source, _external("test", "https://example.com/x"))
    assert [f.name for f in locked.files] == ["a.zsh", "b.zsh"]


def test_use_patterns_must_all_match(tmp_path):
    source = _source_dir(tmp_path, "a.zsh")
    plugin = _external("test", "https://example.com/x", use=["a.zsh", "b.zsh"])
    with pytest.raises(PluginError, match="failed to find any files matching `b.zsh`"):
        _lock(tmp_path, source, plugin)


def test_use_patterns_keep_order_and_dedup(tmp_path):
    source = _source_dir(tmp_path, "a.zsh", "b.zsh", "c.sh")
    plugin = _external("test", "https://example.com/x", use=["c.sh", "*.zsh", "a.zsh"])
    locked = _lock(tmp_path, source, plugin)
    assert [f.name for f in locked.files] == ["c.sh", "a.zsh", "b.zsh"]


def test_use_patterns_are_templates(tmp_path):
    source = _source_dir(tmp_path, "test.zsh", "other.zsh")
    plugin = _external("test", "https://example.com/x", use=["{{ name }}.zsh"])
    locked = _lock(tmp_path, source, plugin)
    assert [f.name for f in locked.files] == ["test.zsh"]


def test_dir_is_rendered(tmp_path):
    source = _source_dir(tmp_path, "plugins/test/test.plugin.zsh")
    plugin = _external("test", "https://example.com/x", dir="plugins/{{ name }}")
    locked = _lock(tmp_path, source, plugin)
    assert locked.plugin_dir == source.dir / "plugins/test"
    assert locked.dir == locked.plugin_dir
    assert locked.files == [source.dir / "plugins/test/test.plugin.zsh"]


def test_no_files_with_each_template_is_an_error(tmp_path):
    source = _source_dir(tmp_path, "README.md")
    with pytest.raises(PluginError):
        _lock(tmp_path, source, _external("test", "https://example.com/x"))


def test_no_files_without_each_template_is_fine(tmp_path):
    source = _source_dir(tmp_path, "README.md")
    plugin = _external("test", "https://example.com/x", apply=["PATH"])
    locked = _lock(tmp_path, source, plugin)
    assert locked.files == []
    assert locked.apply == ["PATH"]


def test_match_glob_rejects_broken_symlink(tmp_path):
    (tmp_path / "broken.zsh").symlink_to(tmp_path / "missing")
    with pytest.raises(PluginError, match="failed to read symlink"):
        match_glob(tmp_path, "*.zsh")


def test_locked_plugin_dir_defaults_to_source_dir(tmp_path):
    plugin = LockedExternalPlugin(name="a", source_dir=tmp_path)
    assert plugin.dir == tmp_path
