"""
Post-run health check of linker invocations.

The linker can run out of heap on a dense video and still exit with status 0,
so the exit code alone does not tell whether a video was linked completely.
After all workers have finished, every per-video ``LinkResult`` is combined
with a scan of its log for the JVM's out-of-memory marker into one
``LinkingReport``. Any out-of-memory video fails the run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

from ..errors import LinkerMemoryError
from .linker import STATUS_EMPTY, STATUS_SUCCESS, STATUS_TOOL_ERROR, LinkResult

logger = logging.getLogger(__name__)

OUT_OF_MEMORY_SIGNATURE = "java.lang.OutOfMemoryError"


@dataclass
class LinkingReport:
    """Run-level verdict over all linked videos."""

    succeeded: List[str] = field(default_factory=list)
    empty: List[str] = field(default_factory=list)
    tool_errors: List[str] = field(default_factory=list)
    out_of_memory: List[str] = field(default_factory=list)
    signature_count: int = 0

    @property
    def ok(self) -> bool:
        return not self.out_of_memory

    def as_dict(self) -> dict:
        return {
            "succeeded": list(self.succeeded),
            "empty": list(self.empty),
            "tool_errors": list(self.tool_errors),
            "out_of_memory": list(self.out_of_memory),
            "signature_count": self.signature_count,
        }


def scan_log(path, signature: str = OUT_OF_MEMORY_SIGNATURE) -> int:
    """Count lines of a log containing ``signature``; a missing log counts 0."""
    if path is None:
        return 0
    path = Path(path)
    if not path.exists():
        return 0
    count = 0
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            if signature in line:
                count += 1
    return count


def evaluate_results(
    results: Iterable[LinkResult],
    empty_videos: Iterable[str] = (),
    signature: str = OUT_OF_MEMORY_SIGNATURE,
) -> LinkingReport:
    """Reduce per-video results and their logs into one report."""
    report = LinkingReport(empty=list(empty_videos))
    for result in results:
        hits = scan_log(result.log_path, signature)
        report.signature_count += hits
        if hits:
            report.out_of_memory.append(result.video)
        elif result.status == STATUS_SUCCESS:
            report.succeeded.append(result.video)
        elif result.status == STATUS_EMPTY:
            if result.video not in report.empty:
                report.empty.append(result.video)
        elif result.status == STATUS_TOOL_ERROR:
            report.tool_errors.append(result.video)
    return report


def remove_logs(results: Iterable[LinkResult], log_dir=None) -> None:
    """Delete the per-video logs (and the log folder once it is empty)."""
    for result in results:
        if result.log_path is not None:
            Path(result.log_path).unlink(missing_ok=True)
    if log_dir is not None:
        log_dir = Path(log_dir)
        if log_dir.is_dir() and not any(log_dir.iterdir()):
            log_dir.rmdir()


def check_linking(
    results: List[LinkResult],
    empty_videos: Iterable[str] = (),
    log_dir=None,
    keep_logs: bool = False,
) -> LinkingReport:
    """
    Judge a finished run.

    Args:
        results: One LinkResult per invoked video
        empty_videos: Videos excluded for having no detections
        log_dir: Log folder, removed when empty after clean-up
        keep_logs: Keep logs even when the run succeeded

    Returns:
        LinkingReport

    Raises:
        LinkerMemoryError: If any log contains the out-of-memory marker. Logs
            are kept in that case.
    """
    results = list(results)
    report = evaluate_results(results, empty_videos)

    for video in report.tool_errors:
        logger.warning(f"Linker failed on video {video}; it is missing from the dataset")
    if report.empty:
        logger.info(f"{len(report.empty)} video(s) had no particles: {report.empty}")

    if not report.ok:
        message = (
            f"Java ran out of memory while linking {len(report.out_of_memory)} video(s). "
            f"Try increasing the assigned memory per linking process"
        )
        logger.error(f"{message}: {report.out_of_memory}")
        raise LinkerMemoryError(message, report=report)

    if not keep_logs:
        remove_logs(results, log_dir)
    logger.info("No memory errors occurred during particle linking")
    return report
