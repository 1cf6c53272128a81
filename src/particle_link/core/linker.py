"""
Invocation of the external ParticleLinker.

The linker is a standalone Java program that reads a directory of frame files
and writes one trajectory table. Command construction differs per platform,
so it lives behind a small builder interface; the rest of the pipeline only
sees ``run_linker`` and the ``LinkResult`` it returns.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path, PureWindowsPath
from typing import Any, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)

LINKER_OUTPUT_PREFIX = "ParticleLinker_"

STATUS_SUCCESS = "success"
STATUS_EMPTY = "empty"
STATUS_TOOL_ERROR = "tool_error"


@dataclass
class LinkerSettings:
    """Parameters of one linker invocation."""

    jar_path: str
    java_executable: str = "java"
    memory_mb: int = 512
    link_range: int = 1
    displacement: float = 10.0
    timeout_sec: int = 3600 * 24 * 7

    @classmethod
    def from_config(cls, config) -> "LinkerSettings":
        return cls(
            jar_path=str(config.linker_jar),
            java_executable=config.java_executable,
            memory_mb=int(config.memory_per_process_mb),
            link_range=int(config.link_range),
            displacement=float(config.displacement),
            timeout_sec=int(config.timeout_sec),
        )


@dataclass
class LinkResult:
    """Outcome of linking one video."""

    video: str
    status: str
    returncode: Optional[int] = None
    log_path: Optional[Path] = None
    output_path: Optional[Path] = None
    message: str = ""
    n_frames: int = 0

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SUCCESS


def linker_output_name(detection_file) -> str:
    """Name of the linker's output file for a detection file."""
    return f"{LINKER_OUTPUT_PREFIX}{Path(detection_file).name}"


def _format_number(value) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


class LinkerCommandBuilder(Protocol):
    """Builds the platform-specific linker command line."""

    name: str

    def build(
        self, settings: LinkerSettings, input_dir: Path, output_file: Path
    ) -> List[str]:
        """Return argv for one invocation."""

    def popen_kwargs(self) -> Dict[str, Any]:
        """Extra keyword arguments for ``subprocess.run``."""


class PosixCommandBuilder:
    """Linux/macOS: plain argv, child runs in its own session."""

    name = "posix"

    def java_options(self, settings: LinkerSettings) -> List[str]:
        return [
            f"-Xmx{int(settings.memory_mb)}m",
            f"-Dparticle.linkrange={int(settings.link_range)}",
            f"-Dparticle.displacement={_format_number(settings.displacement)}",
        ]

    def build(self, settings, input_dir, output_file):
        return [
            str(settings.java_executable),
            *self.java_options(settings),
            "-jar",
            str(Path(settings.jar_path).expanduser()),
            str(input_dir),
            str(output_file),
        ]

    def popen_kwargs(self):
        return {"start_new_session": True}


class WindowsCommandBuilder(PosixCommandBuilder):
    """Windows: ``java.exe`` and native path separators, new process group."""

    name = "windows"

    def build(self, settings, input_dir, output_file):
        java = str(settings.java_executable)
        if not java.lower().endswith(".exe"):
            java = f"{java}.exe"
        return [
            java,
            *self.java_options(settings),
            "-jar",
            str(PureWindowsPath(str(settings.jar_path))),
            str(PureWindowsPath(str(input_dir))),
            str(PureWindowsPath(str(output_file))),
        ]

    def popen_kwargs(self):
        return {"creationflags": getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)}


def select_command_builder(platform: Optional[str] = None) -> LinkerCommandBuilder:
    """Pick the command builder for ``platform`` (defaults to the running OS)."""
    platform = platform or sys.platform
    if platform.startswith("win") or platform == "nt":
        return WindowsCommandBuilder()
    return PosixCommandBuilder()


def run_linker(
    settings: LinkerSettings,
    input_dir,
    output_file,
    log_path,
    builder: Optional[LinkerCommandBuilder] = None,
    video: Optional[str] = None,
) -> LinkResult:
    """
    Run the linker once, capturing stdout and stderr into ``log_path``.

    Failures of the external process never raise here: a non-zero exit,
    a timeout, a missing executable, or a run that leaves no output file are
    all reported as ``tool_error`` so that the remaining videos keep running.

    Args:
        settings: Linker parameters
        input_dir: Directory with the frame files
        output_file: Trajectory file the linker should write
        log_path: File receiving the combined process output
        builder: Command builder; chosen for the running OS when None
        video: Video name recorded on the result

    Returns:
        LinkResult
    """
    builder = builder or select_command_builder()
    input_dir = Path(input_dir)
    output_file = Path(output_file)
    log_path = Path(log_path)
    video = video or input_dir.name

    log_path.parent.mkdir(parents=True, exist_ok=True)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    if output_file.exists():
        # A stale file from an earlier run must not pass for fresh output
        output_file.unlink()

    cmd = builder.build(settings, input_dir, output_file)
    logger.info(f"Linking {video}: {' '.join(cmd)}")

    returncode = None
    message = ""
    with open(log_path, "w", encoding="utf-8") as log:
        try:
            proc = subprocess.run(
                cmd,
                stdout=log,
                stderr=subprocess.STDOUT,
                timeout=settings.timeout_sec,
                check=False,
                **builder.popen_kwargs(),
            )
            returncode = proc.returncode
        except subprocess.TimeoutExpired:
            message = f"Linker timed out after {settings.timeout_sec} s"
        except OSError as e:
            message = f"Failed to run linker: {e}"
        if message:
            log.write(f"\n[particle-link] {message}\n")

    if message:
        logger.error(f"{video}: {message}")
        status = STATUS_TOOL_ERROR
    elif returncode != 0:
        message = f"Linker exited with code {returncode}"
        logger.warning(f"{video}: {message} (see {log_path})")
        status = STATUS_TOOL_ERROR
    elif not output_file.exists():
        message = "Linker produced no output file"
        logger.warning(f"{video}: {message} (see {log_path})")
        status = STATUS_TOOL_ERROR
    else:
        status = STATUS_SUCCESS
        logger.debug(f"{video}: linked into {output_file}")

    return LinkResult(
        video=video,
        status=status,
        returncode=returncode,
        log_path=log_path,
        output_path=output_file if output_file.exists() else None,
        message=message,
    )


def java_available(java_executable: str = "java") -> bool:
    """True if ``java_executable`` resolves on PATH or is an existing file."""
    return bool(shutil.which(java_executable)) or os.path.isfile(java_executable)
