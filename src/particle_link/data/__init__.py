"""Detection table I/O and linker frame-file export."""

from .detections import (
    discover_detection_files,
    load_detection_table,
    load_detection_tables,
    merge_detection_tables,
    video_name_from_detection_file,
)
from .frame_export import export_frames, frame_file_name, frame_number_width

__all__ = [
    "discover_detection_files",
    "export_frames",
    "frame_file_name",
    "frame_number_width",
    "load_detection_table",
    "load_detection_tables",
    "merge_detection_tables",
    "video_name_from_detection_file",
]
