"""
Merging of per-video linker output into one trajectory dataset.

Linker trajectory ids are only unique within a video, so every fix gets a
global ``id`` of the form ``<video>-<local id>``.
"""

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from .linker import STATUS_SUCCESS

logger = logging.getLogger(__name__)

SEGMENT_COLUMNS = ["frame", "x", "y", "trajectory"]
MERGED_KEY_COLUMNS = ["file", "id", "trajectory", "frame", "x", "y"]


def global_trajectory_id(video, local_id):
    """Run-wide trajectory id for a video's local trajectory id."""
    return f"{video}-{int(local_id)}"


def _has_header(path):
    with open(path, "r", encoding="utf-8") as f:
        first = f.readline().strip()
    if not first:
        return False
    token = first.replace(",", "\t").split()[0]
    try:
        float(token)
    except ValueError:
        return True
    return False


def read_linked_segment(path):
    """
    Read one linker output file.

    Args:
        path: Tab-delimited file with frame, x, y and trajectory columns,
            with or without a header row

    Returns:
        pd.DataFrame: Columns ``frame, x, y, trajectory``; empty if the
        linker found no trajectories.
    """
    path = Path(path)
    if path.stat().st_size == 0:
        return pd.DataFrame(columns=SEGMENT_COLUMNS)

    if _has_header(path):
        df = pd.read_csv(path, sep="\t")
        df.columns = [str(c).strip().lower() for c in df.columns]
        missing = [c for c in SEGMENT_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Linker output {path} is missing columns: {missing}")
        df = df[SEGMENT_COLUMNS]
    else:
        df = pd.read_csv(path, sep="\t", header=None, usecols=range(4))
        df.columns = SEGMENT_COLUMNS

    df["frame"] = df["frame"].astype(int)
    df["trajectory"] = df["trajectory"].astype(int)
    return df


def merge_linked_segments(results):
    """
    Concatenate the output of every successfully linked video.

    Videos whose result is not a success, or whose output file is missing,
    are skipped; they are accounted for by the failure report.

    Args:
        results: Iterable of LinkResult

    Returns:
        pd.DataFrame: Columns ``file, id, trajectory, frame, x, y`` sorted by
        (file, trajectory, frame)
    """
    frames = []
    for result in results:
        if result.status != STATUS_SUCCESS or result.output_path is None:
            continue
        if not Path(result.output_path).exists():
            logger.warning(f"Linker output for {result.video} disappeared: {result.output_path}")
            continue
        df = read_linked_segment(result.output_path)
        if df.empty:
            logger.info(f"No trajectories linked in video {result.video}")
            continue
        df.insert(0, "file", result.video)
        df.insert(1, "id", [global_trajectory_id(result.video, t) for t in df["trajectory"]])
        frames.append(df)

    if not frames:
        logger.warning("No linked trajectories to merge")
        return pd.DataFrame(columns=MERGED_KEY_COLUMNS)

    merged = pd.concat(frames, ignore_index=True)[MERGED_KEY_COLUMNS]
    merged = merged.sort_values(["file", "trajectory", "frame"], kind="mergesort")
    merged = merged.reset_index(drop=True)
    logger.info(
        f"Merged {len(merged)} fixes in {merged['id'].nunique()} trajectories "
        f"from {merged['file'].nunique()} videos"
    )
    return merged


def attach_morphology(trajectories, tables, decimals=3):
    """
    Join the detection table's morphology columns onto linked fixes.

    Fixes are matched on video, frame and position rounded to ``decimals``;
    detection ``Slice`` is 1-based while linker frames are 0-based.

    Args:
        trajectories: Output of ``merge_linked_segments``
        tables: Mapping of video name -> (path, DataFrame) or DataFrame
        decimals: Rounding used to match coordinates

    Returns:
        pd.DataFrame: ``trajectories`` with morphology columns appended
    """
    if trajectories.empty:
        return trajectories

    linked_videos = set(trajectories["file"])
    parts = []
    for video, entry in tables.items():
        det = entry[1] if isinstance(entry, tuple) else entry
        if det is None or det.empty or video not in linked_videos:
            continue
        morph_cols = [c for c in det.columns if c not in ("Slice", "X", "Y")]
        if not morph_cols:
            continue
        part = det[morph_cols].copy()
        part["file"] = video
        part["frame"] = det["Slice"].astype(int) - 1
        part["_xk"] = np.round(det["X"].to_numpy(dtype=float), decimals)
        part["_yk"] = np.round(det["Y"].to_numpy(dtype=float), decimals)
        parts.append(part)

    if not parts:
        return trajectories

    morphology = pd.concat(parts, ignore_index=True, sort=False)
    keys = ["file", "frame", "_xk", "_yk"]
    duplicated = morphology.duplicated(subset=keys)
    if duplicated.any():
        logger.debug(f"Dropping {int(duplicated.sum())} detections with duplicate positions")
        morphology = morphology[~duplicated]

    out = trajectories.copy()
    out["_xk"] = np.round(out["x"].to_numpy(dtype=float), decimals)
    out["_yk"] = np.round(out["y"].to_numpy(dtype=float), decimals)
    out = out.merge(morphology, on=keys, how="left", sort=False)
    out = out.drop(columns=["_xk", "_yk"])

    first_morph = [c for c in morphology.columns if c not in keys]
    if first_morph:
        unmatched = int(out[first_morph[0]].isna().sum())
        if unmatched:
            logger.warning(f"{unmatched} fixes could not be matched to a detection")
    return out


def scale_coordinates(trajectories, pixel_to_scale):
    """Convert ``x``/``y`` from pixels to physical units."""
    if pixel_to_scale is None or trajectories.empty:
        return trajectories
    out = trajectories.copy()
    out["x"] = out["x"].astype(float) * float(pixel_to_scale)
    out["y"] = out["y"].astype(float) * float(pixel_to_scale)
    return out
