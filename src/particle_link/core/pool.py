"""
Concurrent linking of partitioned videos.

Each worker takes one ``WorkBatch`` and links its videos one after another:
acquire workspace -> export frames -> run linker -> release workspace.
Workers share nothing but the read-only detection tables, each of which is
only read by the worker owning that video. Threads are enough here since a
worker spends its time blocked on the linker subprocess.
"""

from __future__ import annotations

import dataclasses
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, List, Optional

from tqdm import tqdm

from ..data.frame_export import export_frames
from .linker import (
    STATUS_EMPTY,
    LinkerCommandBuilder,
    LinkerSettings,
    LinkResult,
    linker_output_name,
    run_linker,
)
from .partition import WorkBatch
from .workspace import workspace

logger = logging.getLogger(__name__)


def log_path_for(config, video: str) -> Path:
    return config.log_dir / f"log_{video}.txt"


def _settings_for_workspace(settings: LinkerSettings, ws) -> LinkerSettings:
    """Point the settings at the workspace's private copy of the linker jar."""
    if ws.assets_dir is None:
        return settings
    jar_name = Path(settings.jar_path).name
    candidate = ws.assets_dir / jar_name if ws.assets_dir.is_dir() else ws.assets_dir
    if candidate.is_file() and candidate.name == jar_name:
        return dataclasses.replace(settings, jar_path=str(candidate))
    return settings


def link_video(
    video: str,
    detection_file,
    detections,
    config,
    settings: LinkerSettings,
    builder: Optional[LinkerCommandBuilder] = None,
    batch_id: int = 0,
) -> LinkResult:
    """
    Link one video inside its own workspace.

    Returns:
        LinkResult: ``empty`` when the video has no detections (no workspace,
        no frame files, no invocation), otherwise the linker's result.
    """
    if detections is None or detections.empty:
        logger.warning(f"***** No particles were detected in video {video}")
        return LinkResult(video=video, status=STATUS_EMPTY, message="No particles detected")

    output_file = config.trajectory_dir / linker_output_name(detection_file)
    with workspace(
        f"{batch_id}_{video}", root=config.work_dir, assets=config.linker_assets
    ) as ws:
        n_frames = export_frames(detections, ws.frames_dir)
        result = run_linker(
            _settings_for_workspace(settings, ws),
            ws.frames_dir,
            output_file,
            log_path_for(config, video),
            builder=builder,
            video=video,
        )
    result.n_frames = n_frames
    return result


def link_batch(
    batch: WorkBatch,
    tables,
    config,
    settings: LinkerSettings,
    builder: Optional[LinkerCommandBuilder] = None,
) -> List[LinkResult]:
    """Link every video of one batch sequentially."""
    results = []
    for video in batch.videos:
        detection_file, detections = tables[video]
        results.append(
            link_video(
                video,
                detection_file,
                detections,
                config,
                settings,
                builder=builder,
                batch_id=batch.batch_id,
            )
        )
    logger.info(
        f"Batch {batch.batch_id} finished: "
        f"{sum(r.ok for r in results)}/{len(results)} videos linked"
    )
    return results


def run_pool(
    batches: List[WorkBatch],
    tables,
    config,
    settings: Optional[LinkerSettings] = None,
    builder: Optional[LinkerCommandBuilder] = None,
    show_progress: bool = True,
) -> List[LinkResult]:
    """
    Run all batches, one worker per batch, and wait for every worker.

    A single batch runs inline. Results come back in batch order, which is
    the input video order since batches are contiguous. A ``WorkspaceError``
    raised by a worker is re-raised once the pool has been joined.

    Returns:
        list[LinkResult]: One result per video.
    """
    if not batches:
        return []
    settings = settings or LinkerSettings.from_config(config)
    config.trajectory_dir.mkdir(parents=True, exist_ok=True)
    config.log_dir.mkdir(parents=True, exist_ok=True)

    if len(batches) == 1:
        logger.info(f"Linking {len(batches[0])} videos sequentially")
        return link_batch(batches[0], tables, config, settings, builder)

    logger.info(
        f"Linking {sum(len(b) for b in batches)} videos with {len(batches)} workers"
    )
    by_batch: Dict[int, List[LinkResult]] = {}
    with ThreadPoolExecutor(max_workers=len(batches)) as executor:
        futures = {
            executor.submit(link_batch, batch, tables, config, settings, builder): batch
            for batch in batches
        }
        for future in tqdm(
            as_completed(futures),
            total=len(futures),
            desc="Linking batches",
            disable=not show_progress,
        ):
            by_batch[futures[future].batch_id] = future.result()

    return [r for batch in batches for r in by_batch[batch.batch_id]]
