"""
Worker-private temporary workspaces.

A workspace holds one video's frame files (and, optionally, a private copy of
the linker's runtime assets) for the duration of one linker invocation. It is
always removed afterwards, whatever happened in between.
"""

from __future__ import annotations

import logging
import re
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from ..errors import WorkspaceError

logger = logging.getLogger(__name__)


@dataclass
class Workspace:
    """One acquired workspace directory."""

    batch_id: str
    root: Path
    frames_dir: Path
    assets_dir: Optional[Path] = None

    @property
    def exists(self) -> bool:
        return self.root.exists()


def _safe_token(value) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]+", "_", str(value)) or "batch"


def acquire(batch_id, root=None, assets=None) -> Workspace:
    """Create a fresh workspace for ``batch_id``.

    Args:
        batch_id: Worker/batch identifier, used as the directory name prefix
        root: Parent directory; the system temp dir when None
        assets: Optional file or directory copied into the workspace

    Returns:
        Workspace

    Raises:
        WorkspaceError: If the directory or the asset copy cannot be created.
    """
    try:
        if root is not None:
            Path(root).mkdir(parents=True, exist_ok=True)
        # mkdtemp guarantees a name no other worker holds
        ws_root = Path(
            tempfile.mkdtemp(prefix=f"link_{_safe_token(batch_id)}_", dir=root)
        )
    except OSError as e:
        raise WorkspaceError(
            f"Could not create workspace for batch {batch_id}: {e}"
        ) from e

    workspace = Workspace(
        batch_id=str(batch_id), root=ws_root, frames_dir=ws_root / "frames"
    )
    try:
        workspace.frames_dir.mkdir()
        if assets is not None:
            src = Path(assets)
            dst = ws_root / "assets" / src.name
            dst.parent.mkdir()
            if src.is_dir():
                shutil.copytree(src, dst)
            else:
                shutil.copy2(src, dst)
            workspace.assets_dir = dst
    except OSError as e:
        release(workspace)
        raise WorkspaceError(
            f"Could not populate workspace {ws_root} for batch {batch_id}: {e}"
        ) from e

    logger.debug(f"Acquired workspace {ws_root} for batch {batch_id}")
    return workspace


def release(workspace: Workspace) -> None:
    """Recursively remove a workspace, including any asset copy.

    Raises:
        WorkspaceError: If the directory exists but cannot be removed.
    """
    if not workspace.root.exists():
        return
    try:
        shutil.rmtree(workspace.root)
    except OSError as e:
        raise WorkspaceError(
            f"Could not remove workspace {workspace.root}: {e}"
        ) from e
    logger.debug(f"Released workspace {workspace.root}")


@contextmanager
def workspace(batch_id, root=None, assets=None) -> Iterator[Workspace]:
    """Acquire a workspace and release it on every exit path."""
    ws = acquire(batch_id, root=root, assets=assets)
    try:
        yield ws
    finally:
        release(ws)
