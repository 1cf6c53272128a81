"""
End-to-end linking run: detections in, trajectory dataset and verdict out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import pandas as pd

from ..data.detections import load_detection_tables, merge_detection_tables
from ..errors import LinkerMemoryError
from .filtering import filter_trajectories
from .kinematics import compute_kinematics
from .linker import LinkerCommandBuilder, LinkerSettings, LinkResult, java_available
from .merge import attach_morphology, merge_linked_segments, scale_coordinates
from .monitor import LinkingReport, check_linking
from .partition import WorkBatch, compute_worker_count, partition_videos, split_empty_videos
from .pool import run_pool

logger = logging.getLogger(__name__)

PARTICLE_DATABASE_NAME = "particle_data.csv"
TRAJECTORY_DATABASE_NAME = "trajectory.csv"
FILTERED_DATABASE_NAME = "trajectory_filtered.csv"


@dataclass
class LinkingRun:
    """Everything a run produced, including what it left out and why."""

    trajectories: pd.DataFrame
    results: List[LinkResult] = field(default_factory=list)
    batches: List[WorkBatch] = field(default_factory=list)
    empty_videos: List[str] = field(default_factory=list)
    n_workers: int = 1
    report: Optional[LinkingReport] = None
    filtered: Optional[pd.DataFrame] = None
    filter_stats: dict = field(default_factory=dict)
    output_path: Optional[Path] = None
    filtered_path: Optional[Path] = None


def build_trajectory_dataset(results, tables, config) -> pd.DataFrame:
    """Merge linker output, join morphology, scale and add movement metrics."""
    merged = merge_linked_segments(results)
    merged = attach_morphology(merged, tables)
    merged = scale_coordinates(merged, config.pixel_to_scale)
    return compute_kinematics(merged, frame_period=config.frame_period)


def run_linking(
    config,
    builder: Optional[LinkerCommandBuilder] = None,
    check_paths: bool = True,
    show_progress: bool = True,
) -> LinkingRun:
    """
    Link every detection table under ``config.particle_dir``.

    Videos are linked to completion before anything is judged: the merged
    dataset is written first, then the logs are checked. An out-of-memory
    failure therefore raises ``LinkerMemoryError`` with the dataset of the
    remaining videos already on disk (and on the exception's ``run``).

    Args:
        config: LinkingConfig
        builder: Linker command builder; chosen for the running OS when None
        check_paths: Require the linker jar and particle folder to exist
        show_progress: Show a progress bar over worker batches

    Returns:
        LinkingRun

    Raises:
        ConfigurationError: Invalid settings, before any work starts.
        WorkspaceError: A workspace could not be created or removed.
        LinkerMemoryError: The linker ran out of memory on some video.
    """
    config.validate(check_paths=check_paths)
    if check_paths and builder is None and not java_available(config.java_executable):
        logger.warning(f"Java executable '{config.java_executable}' not found on PATH")

    tables = load_detection_tables(
        config.particle_dir, config.detection_pattern, config.start_index
    )
    videos, empty_videos = split_empty_videos(tables)

    config.merged_dir.mkdir(parents=True, exist_ok=True)
    merge_detection_tables(tables).to_csv(
        config.merged_dir / PARTICLE_DATABASE_NAME, index=False
    )

    n_workers = compute_worker_count(
        config.resolved_memory_mb(),
        config.memory_per_process_mb,
        config.max_workers,
        config.resolved_cpu_count(),
        len(videos),
        config.min_videos_per_worker,
    )
    batches = partition_videos(videos, n_workers)
    for batch in batches:
        logger.debug(f"Batch {batch.batch_id}: {batch.videos}")

    results = run_pool(
        batches,
        tables,
        config,
        settings=LinkerSettings.from_config(config),
        builder=builder,
        show_progress=show_progress,
    )

    trajectories = build_trajectory_dataset(results, tables, config)
    run = LinkingRun(
        trajectories=trajectories,
        results=results,
        batches=batches,
        empty_videos=empty_videos,
        n_workers=n_workers,
        output_path=config.merged_dir / TRAJECTORY_DATABASE_NAME,
    )
    trajectories.to_csv(run.output_path, index=False)
    logger.info(f"Saved {len(trajectories)} fixes to {run.output_path}")

    if config.enable_filtering:
        run.filtered, run.filter_stats = filter_trajectories(
            trajectories,
            min_net_disp=config.min_net_disp,
            min_duration=config.min_duration,
            min_detection_freq=config.min_detection_freq,
            min_median_step_length=config.min_median_step_length,
            frame_period=config.frame_period,
        )
        run.filtered_path = config.merged_dir / FILTERED_DATABASE_NAME
        run.filtered.to_csv(run.filtered_path, index=False)

    try:
        run.report = check_linking(
            results, empty_videos, log_dir=config.log_dir, keep_logs=config.keep_logs
        )
    except LinkerMemoryError as e:
        run.report = e.report
        e.run = run
        raise
    return run
