from shell_plugins_sdk.clean import clean
from shell_plugins_sdk.context import LockContext
from shell_plugins_sdk.models.config import InlinePlugin
from shell_plugins_sdk.models.locked import LockedConfig, LockedExternalPlugin


def _touch(path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("")
    return path


def _setup(tmp_path):
    ctx = LockContext.testing(tmp_path)
    live_repo = ctx.clone_dir / "github.com" / "owner" / "live"
    _touch(live_repo / "live.plugin.zsh")
    _touch(live_repo / ".git" / "HEAD")
    _touch(ctx.clone_dir / "github.com" / "owner" / "dead" / "dead.zsh")
    _touch(ctx.clone_dir / "gitlab.com" / "other" / "x.zsh")
    _touch(ctx.clone_dir / "github.com" / "stray.txt")

    live_file = _touch(ctx.download_dir / "example.com" / "live.zsh")
    _touch(ctx.download_dir / "example.com" / "dead.zsh")
    _touch(ctx.download_dir / "other.com" / "dead.zsh")

    locked = LockedConfig(
        ctx=ctx,
        plugins=[
            LockedExternalPlugin(
                name="live", source_dir=live_repo, files=[live_repo / "live.plugin.zsh"]
            ),
            LockedExternalPlugin(
                name="remote", source_dir=live_file.parent, files=[live_file]
            ),
            InlinePlugin(name="inline", raw="echo"),
        ],
    )
    return ctx, locked


def test_clean_removes_unreferenced(tmp_path):
    ctx, locked = _setup(tmp_path)
    warnings = clean(locked, ctx)

    assert warnings == []
    assert (ctx.clone_dir / "github.com/owner/live/live.plugin.zsh").exists()
    assert (ctx.clone_dir / "github.com/owner/live/.git/HEAD").exists()
    assert not (ctx.clone_dir / "github.com/owner/dead").exists()
    assert not (ctx.clone_dir / "gitlab.com").exists()
    assert not (ctx.clone_dir / "github.com/stray.txt").exists()

    assert (ctx.download_dir / "example.com/live.zsh").exists()
    assert not (ctx.download_dir / "example.com/dead.zsh").exists()
    assert not (ctx.download_dir / "other.com").exists()


def test_clean_is_idempotent(tmp_path):
    ctx, locked = _setup(tmp_path)
    clean(locked, ctx)
    before = sorted(p for p in tmp_path.rglob("*"))
    assert clean(locked, ctx) == []
    assert sorted(p for p in tmp_path.rglob("*")) == before


def test_clean_with_nothing_locked_empties_roots(tmp_path):
    ctx, _ = _setup(tmp_path)
    clean(LockedConfig(ctx=ctx), ctx)
    assert list(ctx.clone_dir.iterdir()) == []
    assert list(ctx.download_dir.iterdir()) == []


def test_clean_skips_roots_outside_data_dir(tmp_path):
    outside = tmp_path / "elsewhere"
    _touch(outside / "keep.zsh")
    ctx = LockContext.testing(tmp_path / "data", clone_dir=outside)
    clean(LockedConfig(ctx=ctx), ctx)
    assert (outside / "keep.zsh").exists()


def test_clean_missing_roots(tmp_path):
    ctx = LockContext.testing(tmp_path)
    assert clean(LockedConfig(ctx=ctx), ctx) == []
