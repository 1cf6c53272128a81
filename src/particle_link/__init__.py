"""
Particle-Link Package

Turns per-frame particle detections from video recordings into linked
trajectories with movement metrics, running the external ParticleLinker on
many videos concurrently.

Key Features:
- Memory- and core-aware partitioning of videos across a bounded worker pool
- Isolated per-worker temporary workspaces for the linker's frame files
- Merging of per-video linker output with globally unique trajectory ids
- Per-fix movement metrics (step length, speed, displacement, turning angle)
- Post-hoc detection of linker out-of-memory failures
"""

__version__ = "1.0.0"

from .config import LinkingConfig
from .errors import (
    ConfigurationError,
    DetectionFormatError,
    LinkerMemoryError,
    WorkspaceError,
)

__all__ = [
    "ConfigurationError",
    "DetectionFormatError",
    "LinkerMemoryError",
    "LinkingConfig",
    "WorkspaceError",
]
