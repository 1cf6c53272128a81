from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from particle_link.core.linker import STATUS_SUCCESS, STATUS_TOOL_ERROR, LinkResult
from particle_link.core.merge import (
    attach_morphology,
    global_trajectory_id,
    merge_linked_segments,
    read_linked_segment,
    scale_coordinates,
)
from tests.helpers.linking import detection_table


def _segment(path: Path, rows, header: bool = True) -> Path:
    lines = ["frame\tx\ty\ttrajectory"] if header else []
    lines += [f"{f}\t{x}\t{y}\t{t}" for f, x, y, t in rows]
    path.write_text("\n".join(lines) + "\n")
    return path


def _ok(video: str, path: Path) -> LinkResult:
    return LinkResult(video=video, status=STATUS_SUCCESS, returncode=0, output_path=path)


def test_read_linked_segment_with_and_without_header(tmp_path: Path) -> None:
    rows = [(0, 1.0, 2.0, 1), (1, 1.5, 2.5, 1)]
    with_header = read_linked_segment(_segment(tmp_path / "a.txt", rows))
    without = read_linked_segment(_segment(tmp_path / "b.txt", rows, header=False))
    pd.testing.assert_frame_equal(with_header, without)
    assert list(with_header.columns) == ["frame", "x", "y", "trajectory"]


def test_read_linked_segment_normalizes_header_case(tmp_path: Path) -> None:
    path = tmp_path / "a.txt"
    path.write_text("Frame\tX\tY\tTrajectory\n3\t1.0\t2.0\t7\n")
    df = read_linked_segment(path)
    assert df.to_dict(orient="records") == [{"frame": 3, "x": 1.0, "y": 2.0, "trajectory": 7}]


def test_read_empty_segment(tmp_path: Path) -> None:
    empty = tmp_path / "empty.txt"
    empty.write_text("")
    assert read_linked_segment(empty).empty
    header_only = _segment(tmp_path / "header.txt", [])
    assert read_linked_segment(header_only).empty


def test_global_ids_do_not_collide_across_videos(tmp_path: Path) -> None:
    a = _segment(tmp_path / "a.txt", [(1, 5.0, 5.0, 1), (0, 4.0, 5.0, 1), (0, 9.0, 9.0, 2)])
    b = _segment(tmp_path / "b.txt", [(0, 1.0, 1.0, 1), (1, 2.0, 1.0, 1)])

    merged = merge_linked_segments([_ok("video_b", b), _ok("video_a", a)])

    assert list(merged.columns) == ["file", "id", "trajectory", "frame", "x", "y"]
    assert merged["id"].nunique() == 3
    ids_per_local = merged.groupby("trajectory")["id"].unique()
    assert sorted(ids_per_local[1]) == ["video_a-1", "video_b-1"]
    assert merged[["file", "trajectory", "frame"]].values.tolist() == [
        ["video_a", 1, 0],
        ["video_a", 1, 1],
        ["video_a", 2, 0],
        ["video_b", 1, 0],
        ["video_b", 1, 1],
    ]


def test_merge_skips_failed_and_missing_outputs(tmp_path: Path) -> None:
    a = _segment(tmp_path / "a.txt", [(0, 1.0, 1.0, 1)])
    results = [
        _ok("a", a),
        LinkResult(video="b", status=STATUS_TOOL_ERROR, returncode=1),
        _ok("c", tmp_path / "never_written.txt"),
    ]
    merged = merge_linked_segments(results)
    assert merged["file"].unique().tolist() == ["a"]


def test_merge_of_nothing_has_key_columns() -> None:
    merged = merge_linked_segments([])
    assert merged.empty
    assert list(merged.columns) == ["file", "id", "trajectory", "frame", "x", "y"]


def test_global_trajectory_id() -> None:
    assert global_trajectory_id("sample_01", 4) == "sample_01-4"
    assert global_trajectory_id("sample_01", 4.0) == "sample_01-4"


def test_attach_morphology_matches_on_frame_and_position() -> None:
    trajectories = pd.DataFrame(
        {
            "file": ["a", "a", "a"],
            "id": ["a-1", "a-1", "a-2"],
            "trajectory": [1, 1, 2],
            "frame": [0, 1, 0],
            "x": [1.0, 2.0, 7.0],
            "y": [1.0, 1.0, 7.0],
        }
    )
    # Slice is 1-based; the linker's frame is 0-based
    tables = {"a": ("a.ijout.txt", detection_table([(1, 7.0, 7.0), (1, 1.0, 1.0), (2, 2.0000001, 1.0)]))}

    out = attach_morphology(trajectories, tables)

    assert out[["id", "frame"]].values.tolist() == trajectories[["id", "frame"]].values.tolist()
    assert out["Area"].tolist() == [11.0, 12.0, 10.0]
    assert out["Circ."].tolist() == pytest.approx([0.9, 0.9, 0.9])


def test_scale_coordinates() -> None:
    df = pd.DataFrame({"x": [1, 2], "y": [3, 4]})
    scaled = scale_coordinates(df, 0.5)
    assert scaled["x"].tolist() == [0.5, 1.0]
    assert scaled["y"].tolist() == [1.5, 2.0]
    assert scale_coordinates(df, None) is df
