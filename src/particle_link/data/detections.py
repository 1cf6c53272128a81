"""
Loading of the particle analyzer's per-video detection tables.

Each video yields one tab-delimited text file with a header row, one row per
detected particle, the 1-based frame in ``Slice`` and the centroid in ``X``
and ``Y``. All other columns are morphology measurements and are carried
through untouched.
"""

import logging
from collections import OrderedDict
from pathlib import Path

import pandas as pd

from ..errors import DetectionFormatError

logger = logging.getLogger(__name__)

DETECTION_SUFFIX = ".ijout.txt"
VIDEO_SUFFIXES = (".avi", ".cxd", ".mp4", ".mov")
REQUIRED_COLUMNS = ["Slice", "X", "Y"]


def discover_detection_files(folder, pattern=f"*{DETECTION_SUFFIX}"):
    """Return detection files in ``folder`` sorted by name."""
    folder = Path(folder)
    if not folder.is_dir():
        logger.warning(f"Detection folder does not exist: {folder}")
        return []
    return sorted(p for p in folder.glob(pattern) if p.is_file())


def video_name_from_detection_file(path):
    """
    Derive the video identifier from a detection file name.

    ``sample_01.avi.ijout.txt`` and ``sample_01.ijout.txt`` both map to
    ``sample_01``.
    """
    name = Path(path).name
    if name.endswith(DETECTION_SUFFIX):
        name = name[: -len(DETECTION_SUFFIX)]
    for suffix in VIDEO_SUFFIXES:
        if name.lower().endswith(suffix):
            name = name[: -len(suffix)]
            break
    return name


def load_detection_table(path):
    """
    Read one detection table.

    Args:
        path: Path to the tab-delimited detection file

    Returns:
        pd.DataFrame: One row per detection; empty (with the required
        columns) when the file has no data rows.

    Raises:
        DetectionFormatError: If the file cannot be parsed or lacks a required column.
    """
    path = Path(path)
    try:
        df = pd.read_csv(path, sep="\t")
    except pd.errors.EmptyDataError:
        logger.warning(f"Detection file is empty: {path}")
        return pd.DataFrame(columns=REQUIRED_COLUMNS)
    except pd.errors.ParserError as e:
        raise DetectionFormatError(f"Cannot parse detection file {path}: {e}") from e

    # ImageJ writes an unnamed row-number column first
    unnamed = [c for c in df.columns if str(c).startswith("Unnamed") or c == " "]
    if unnamed:
        df = df.drop(columns=unnamed)

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise DetectionFormatError(f"Detection file {path} is missing columns: {missing}")

    if not df.empty:
        df["Slice"] = df["Slice"].astype(int)
    logger.debug(f"Loaded {len(df)} detections from {path.name}")
    return df


def load_detection_tables(folder, pattern=f"*{DETECTION_SUFFIX}", start_index=0):
    """
    Load every detection table in a folder.

    Args:
        folder: Folder holding the particle analyzer output
        pattern: Glob for detection files
        start_index: Skip this many files of the sorted listing

    Returns:
        OrderedDict: video name -> (detection file path, DataFrame), in file order
    """
    files = discover_detection_files(folder, pattern)
    if start_index:
        logger.info(f"Skipping the first {start_index} of {len(files)} detection files")
        files = files[start_index:]

    tables = OrderedDict()
    for path in files:
        video = video_name_from_detection_file(path)
        if video in tables:
            raise DetectionFormatError(
                f"Detection files {tables[video][0].name} and {path.name} "
                f"map to the same video '{video}'"
            )
        tables[video] = (path, load_detection_table(path))
    logger.info(f"Loaded detection tables for {len(tables)} videos from {folder}")
    return tables


def merge_detection_tables(tables):
    """
    Stack detection tables into one particle database with a ``file`` column.

    Args:
        tables: Mapping of video name -> DataFrame or (path, DataFrame)

    Returns:
        pd.DataFrame
    """
    frames = []
    for video, entry in tables.items():
        df = entry[1] if isinstance(entry, tuple) else entry
        if df.empty:
            continue
        df = df.copy()
        df.insert(0, "file", video)
        frames.append(df)
    if not frames:
        return pd.DataFrame(columns=["file"] + REQUIRED_COLUMNS)
    return pd.concat(frames, ignore_index=True, sort=False)
