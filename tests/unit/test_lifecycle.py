"""Unit tests for workspace creation and exit cleanup."""

import re
import signal
from pathlib import Path

import pytest

from mdmath.contexts.rendering import RenderCache, RenderedEquation, WorkspaceError
from mdmath.contexts.rendering.models import CacheKey
from mdmath.contexts.serving import LifecycleManager, Workspace


def _produce(cache, workspace_path, name):
    path = workspace_path / name
    path.write_bytes(b"png")
    key = CacheKey(name, 8, 1, 16, 1, 0, "#fff")
    cache.put(key, RenderedEquation(name, path, 1, 1))
    return path


@pytest.mark.unit
def test_workspace_name_has_random_suffix(tmp_path):
    first = Workspace(root=tmp_path)
    second = Workspace(root=tmp_path)

    assert re.fullmatch(r"mdmath-[0-9a-f]{6}", first.path.name)
    assert first.path.parent == tmp_path
    assert first.path != second.path


@pytest.mark.unit
def test_create_tolerates_existing_directory(tmp_path):
    workspace = Workspace(root=tmp_path, suffix="abc123")

    assert workspace.create() == tmp_path / "mdmath-abc123"
    assert workspace.create().is_dir()


@pytest.mark.unit
def test_create_failure_is_workspace_error(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")

    with pytest.raises(WorkspaceError, match="Cannot create workspace"):
        Workspace(root=blocker).create()


@pytest.mark.unit
def test_cleanup_removes_produced_files_and_workspace(tmp_path, typesetter):
    cache = RenderCache(typesetter)
    lifecycle = LifecycleManager(Workspace(root=tmp_path), cache)
    workspace_path = lifecycle.start()
    files = [_produce(cache, workspace_path, name) for name in ("a.png", "b.png")]

    lifecycle.cleanup()

    assert not any(path.exists() for path in files)
    assert not workspace_path.exists()


@pytest.mark.unit
def test_cleanup_ignores_already_deleted_files(tmp_path, typesetter):
    cache = RenderCache(typesetter)
    lifecycle = LifecycleManager(Workspace(root=tmp_path), cache)
    workspace_path = lifecycle.start()
    gone = _produce(cache, workspace_path, "a.png")
    kept = _produce(cache, workspace_path, "b.png")
    gone.unlink()

    lifecycle.cleanup()

    assert not kept.exists()
    assert not workspace_path.exists()


@pytest.mark.unit
def test_cleanup_leaves_foreign_files_and_directory(tmp_path, typesetter):
    cache = RenderCache(typesetter)
    lifecycle = LifecycleManager(Workspace(root=tmp_path), cache)
    workspace_path = lifecycle.start()
    produced = _produce(cache, workspace_path, "a.png")
    foreign = workspace_path / "foreign.txt"
    foreign.write_text("not ours")

    lifecycle.cleanup()

    assert not produced.exists()
    assert foreign.exists()


@pytest.mark.unit
def test_cleanup_runs_once(tmp_path, typesetter):
    cache = RenderCache(typesetter)
    lifecycle = LifecycleManager(Workspace(root=tmp_path), cache)
    workspace_path = lifecycle.start()
    lifecycle.cleanup()

    workspace_path.mkdir()
    lifecycle.cleanup()

    assert workspace_path.exists()


@pytest.mark.unit
def test_cleanup_without_cache(tmp_path):
    lifecycle = LifecycleManager(Workspace(root=tmp_path))
    workspace_path = lifecycle.start()

    lifecycle.cleanup()

    assert not workspace_path.exists()


@pytest.mark.unit
def test_install_registers_exit_hook_and_signal_handlers(tmp_path, monkeypatch):
    registered = []
    handlers = {}
    monkeypatch.setattr("atexit.register", registered.append)
    monkeypatch.setattr("signal.signal", lambda sig, handler: handlers.__setitem__(sig, handler))
    lifecycle = LifecycleManager(Workspace(root=tmp_path))
    workspace_path = lifecycle.start()

    lifecycle.install(signals=[signal.SIGTERM])

    assert registered == [lifecycle.cleanup]
    with pytest.raises(SystemExit) as excinfo:
        handlers[signal.SIGTERM](signal.SIGTERM, None)
    assert excinfo.value.code == 128 + signal.SIGTERM
    assert not Path(workspace_path).exists()
