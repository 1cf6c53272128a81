from __future__ import annotations

from pathlib import Path

import pytest

from particle_link.core.workspace import acquire, release, workspace
from particle_link.errors import WorkspaceError


def test_acquire_creates_unique_directories(tmp_path: Path) -> None:
    first = acquire("0_sample", root=tmp_path)
    second = acquire("0_sample", root=tmp_path)
    try:
        assert first.root != second.root
        assert first.frames_dir.is_dir()
        assert first.root.parent == tmp_path
        assert first.root.name.startswith("link_0_sample_")
    finally:
        release(first)
        release(second)
    assert not first.exists
    assert not second.exists


def test_release_is_recursive_and_idempotent(tmp_path: Path) -> None:
    ws = acquire("b", root=tmp_path)
    (ws.frames_dir / "frame_0000.txt").write_text("frame 0\n")
    (ws.root / "nested" / "deeper").mkdir(parents=True)
    release(ws)
    assert not ws.root.exists()
    release(ws)


def test_context_manager_releases_on_error(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError, match="linker crashed"):
        with workspace("crash", root=tmp_path) as ws:
            (ws.frames_dir / "frame_0000.txt").write_text("frame 0\n")
            raise RuntimeError("linker crashed")
    assert not ws.root.exists()
    assert list(tmp_path.iterdir()) == []


def test_assets_are_copied_and_removed(tmp_path: Path) -> None:
    assets = tmp_path / "linker"
    (assets / "lib").mkdir(parents=True)
    (assets / "ParticleLinker.jar").write_bytes(b"jar")
    (assets / "lib" / "dep.jar").write_bytes(b"dep")

    with workspace("assets", root=tmp_path / "work", assets=assets) as ws:
        assert ws.assets_dir is not None
        assert (ws.assets_dir / "ParticleLinker.jar").read_bytes() == b"jar"
        assert (ws.assets_dir / "lib" / "dep.jar").exists()
    assert not ws.root.exists()
    assert (assets / "ParticleLinker.jar").exists()


def test_acquire_fails_when_root_is_a_file(tmp_path: Path) -> None:
    not_a_dir = tmp_path / "file"
    not_a_dir.write_text("x")
    with pytest.raises(WorkspaceError, match="Could not create workspace"):
        acquire("x", root=not_a_dir)


def test_acquire_cleans_up_when_assets_missing(tmp_path: Path) -> None:
    with pytest.raises(WorkspaceError, match="Could not populate"):
        acquire("x", root=tmp_path, assets=tmp_path / "missing.jar")
    assert list(tmp_path.iterdir()) == []
