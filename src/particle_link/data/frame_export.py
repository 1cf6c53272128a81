"""
Export of one video's detections into the ParticleLinker's frame-file layout.

The linker reads a directory of ``frame_NNNN.txt`` files. Each starts with a
``frame <n>`` line (0-based) followed by one ``x y z`` row per particle, and
the sequence must be dense: frames without detections still get a file.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

FRAME_NUMBER_WIDTH = 4


def frame_number_width(n_frames):
    """Zero-padding width that keeps frame names of ``n_frames`` frames in numeric order."""
    return max(FRAME_NUMBER_WIDTH, len(str(max(int(n_frames) - 1, 0))))


def frame_file_name(frame_index, width=FRAME_NUMBER_WIDTH):
    """File name for a 0-based frame index, zero-padded to ``width`` digits."""
    return f"frame_{frame_index:0{width}d}.txt"


def export_frames(detections, directory, three_d=True):
    """
    Write one frame file per frame ``1..max(Slice)`` of a detection table.

    Args:
        detections: DataFrame with ``Slice`` (1-based), ``X`` and ``Y``
        directory: Existing directory to write the frame files into
        three_d: Append a ``z = 0`` column to every coordinate row

    Returns:
        int: Number of frame files written (0 when there are no detections)
    """
    directory = Path(directory)
    if detections is None or detections.empty:
        return 0

    last_slice = int(detections["Slice"].max())
    width = frame_number_width(last_slice)
    coords = detections[["X", "Y"]].copy()
    if three_d:
        coords["Z"] = 0
    by_slice = {
        int(s): rows for s, rows in coords.groupby(detections["Slice"], sort=True)
    }

    for slice_no in range(1, last_slice + 1):
        frame_index = slice_no - 1
        path = directory / frame_file_name(frame_index, width)
        with open(path, "w", encoding="utf-8", newline="\n") as f:
            f.write(f"frame {frame_index}\n")
            rows = by_slice.get(slice_no)
            if rows is not None:
                rows.to_csv(f, sep=" ", header=False, index=False)

    logger.debug(
        f"Wrote {last_slice} frame files ({len(detections)} detections) to {directory}"
    )
    return last_slice
