"""
Worker-count policy and deterministic assignment of videos to workers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_MIN_VIDEOS_PER_WORKER = 5


@dataclass
class WorkBatch:
    """Videos assigned to one worker, in input order."""

    batch_id: int
    videos: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.videos)


def compute_worker_count(
    memory_mb: int,
    memory_per_worker_mb: int,
    max_workers: int,
    cores: int,
    n_videos: int,
    min_videos_per_worker: int = DEFAULT_MIN_VIDEOS_PER_WORKER,
) -> int:
    """
    Decide how many linker processes may run at once.

    The resource bound is ``max(1, min(memory // per_worker, cores - 1,
    max_workers))``. If splitting the videos over that many workers would
    leave a worker with fewer than ``min_videos_per_worker`` videos, the count
    collapses to 1 and linking runs sequentially.

    Args:
        memory_mb: Total memory budget
        memory_per_worker_mb: Memory cap of one linker process
        max_workers: Configured upper bound
        cores: Logical cores on the machine
        n_videos: Videos that will actually be linked
        min_videos_per_worker: Smallest batch worth a separate worker

    Returns:
        int: Worker count, at least 1

    Raises:
        ConfigurationError: On non-positive resources or a per-worker memory
            requirement above the total budget.
    """
    if memory_per_worker_mb <= 0 or memory_mb <= 0:
        raise ConfigurationError("Memory budget and memory per worker must be positive")
    if memory_per_worker_mb > memory_mb:
        raise ConfigurationError(
            f"Machine memory ({memory_mb} MB) needs to be larger than the memory "
            f"per linker process ({memory_per_worker_mb} MB)."
        )
    if max_workers < 1 or cores < 1 or min_videos_per_worker < 1:
        raise ConfigurationError(
            "max_workers, cores and min_videos_per_worker must be at least 1"
        )

    mem_ratio = memory_mb // memory_per_worker_mb
    resource_bound = max(1, min(mem_ratio, cores - 1, max_workers))
    workers = resource_bound
    if workers > 1 and n_videos < workers * min_videos_per_worker:
        # Fewer than min_videos_per_worker videos each: link sequentially
        workers = 1

    logger.info(
        f"Worker count: {workers} (memory allows {mem_ratio}, cores allow {cores - 1}, "
        f"cap {max_workers}, {n_videos} videos at >= {min_videos_per_worker} per worker)"
    )
    return workers


def partition_videos(videos: Sequence[str], n_workers: int) -> List[WorkBatch]:
    """
    Split videos into contiguous, index-ordered batches.

    Batch sizes differ by at most one, earlier batches taking the remainder.
    No batch is empty, so fewer than ``n_workers`` batches are returned when
    there are fewer videos than workers.
    """
    if n_workers < 1:
        raise ValueError("n_workers must be at least 1")
    videos = list(videos)
    if not videos:
        return []

    n_batches = min(n_workers, len(videos))
    base, extra = divmod(len(videos), n_batches)
    batches = []
    start = 0
    for batch_id in range(n_batches):
        size = base + (1 if batch_id < extra else 0)
        batches.append(WorkBatch(batch_id=batch_id, videos=videos[start : start + size]))
        start += size
    return batches


def split_empty_videos(tables) -> Tuple[List[str], List[str]]:
    """
    Separate videos with detections from videos without any.

    Args:
        tables: Mapping of video name -> DataFrame or (path, DataFrame)

    Returns:
        tuple: (videos with detections, videos without), each in input order
    """
    non_empty, empty = [], []
    for video, entry in tables.items():
        df = entry[1] if isinstance(entry, tuple) else entry
        if df is None or len(df) == 0:
            empty.append(video)
        else:
            non_empty.append(video)
    for video in empty:
        logger.warning(
            f"***** No particles were detected in video {video} -- check the raw "
            f"video and also threshold values"
        )
    return non_empty, empty
