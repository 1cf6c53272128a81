"""
Core linking components for Particle-Link.

This package contains the worker-count policy, workspace handling, linker
invocation, the worker pool, merging of linker output, movement metrics and
the post-run failure check.
"""
from .filtering import filter_trajectories
from .kinematics import KINEMATIC_COLUMNS, compute_kinematics, trajectory_summary
from .linker import (
    LinkerSettings,
    LinkResult,
    PosixCommandBuilder,
    WindowsCommandBuilder,
    run_linker,
    select_command_builder,
)
from .merge import attach_morphology, merge_linked_segments, read_linked_segment
from .monitor import OUT_OF_MEMORY_SIGNATURE, LinkingReport, check_linking
from .partition import WorkBatch, compute_worker_count, partition_videos
from .pipeline import LinkingRun, run_linking
from .pool import run_pool
from .workspace import Workspace, acquire, release, workspace

__all__ = [
    "KINEMATIC_COLUMNS",
    "OUT_OF_MEMORY_SIGNATURE",
    "LinkResult",
    "LinkerSettings",
    "LinkingReport",
    "LinkingRun",
    "PosixCommandBuilder",
    "WindowsCommandBuilder",
    "WorkBatch",
    "Workspace",
    "acquire",
    "attach_morphology",
    "check_linking",
    "compute_kinematics",
    "compute_worker_count",
    "filter_trajectories",
    "merge_linked_segments",
    "partition_videos",
    "read_linked_segment",
    "release",
    "run_linker",
    "run_linking",
    "run_pool",
    "select_command_builder",
    "trajectory_summary",
    "workspace",
]
