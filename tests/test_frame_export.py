from __future__ import annotations

from pathlib import Path

import pandas as pd

from particle_link.data.frame_export import export_frames, frame_file_name, frame_number_width


def _read(path: Path) -> list[str]:
    return path.read_text(encoding="utf-8").splitlines()


def test_frame_file_name_is_zero_padded() -> None:
    assert frame_file_name(0) == "frame_0000.txt"
    assert frame_file_name(42) == "frame_0042.txt"
    names = [frame_file_name(i) for i in (9, 10, 100, 2)]
    assert sorted(names) == [frame_file_name(i) for i in (2, 9, 10, 100)]


def test_export_writes_dense_sequence_including_empty_frames(tmp_path: Path) -> None:
    detections = pd.DataFrame(
        {
            "Slice": [1, 1, 3, 5],
            "X": [1.5, 7.0, 2.25, 9.0],
            "Y": [2.5, 8.0, 3.0, 4.0],
            "Area": [10, 11, 12, 13],
        }
    )
    n = export_frames(detections, tmp_path)

    assert n == 5
    files = sorted(p.name for p in tmp_path.iterdir())
    assert files == [frame_file_name(i) for i in range(5)]

    assert _read(tmp_path / "frame_0000.txt") == ["frame 0", "1.5 2.5 0", "7.0 8.0 0"]
    assert _read(tmp_path / "frame_0001.txt") == ["frame 1"]
    assert _read(tmp_path / "frame_0002.txt") == ["frame 2", "2.25 3.0 0"]
    assert _read(tmp_path / "frame_0003.txt") == ["frame 3"]
    assert _read(tmp_path / "frame_0004.txt") == ["frame 4", "9.0 4.0 0"]


def test_export_keeps_row_order_within_frame(tmp_path: Path) -> None:
    detections = pd.DataFrame(
        {"Slice": [2, 1, 2, 2], "X": [3.0, 0.0, 1.0, 2.0], "Y": [0.0, 0.0, 0.0, 0.0]}
    )
    export_frames(detections, tmp_path)
    assert _read(tmp_path / "frame_0001.txt")[1:] == ["3.0 0.0 0", "1.0 0.0 0", "2.0 0.0 0"]


def test_export_two_dimensional(tmp_path: Path) -> None:
    detections = pd.DataFrame({"Slice": [1], "X": [4.0], "Y": [5.0]})
    export_frames(detections, tmp_path, three_d=False)
    assert _read(tmp_path / "frame_0000.txt") == ["frame 0", "4.0 5.0"]


def test_export_of_empty_table_writes_nothing(tmp_path: Path) -> None:
    empty = pd.DataFrame(columns=["Slice", "X", "Y"])
    assert export_frames(empty, tmp_path) == 0
    assert list(tmp_path.iterdir()) == []


def test_padding_widens_for_long_videos(tmp_path: Path) -> None:
    assert frame_number_width(10000) == 4
    assert frame_number_width(10001) == 5

    detections = pd.DataFrame({"Slice": [1, 10001], "X": [1.0, 2.0], "Y": [3.0, 4.0]})
    assert export_frames(detections, tmp_path, three_d=False) == 10001

    names = sorted(p.name for p in tmp_path.iterdir())
    assert names[0] == "frame_00000.txt"
    assert names[-1] == "frame_10000.txt"
    assert [int(n[len("frame_") : -len(".txt")]) for n in names] == list(range(10001))
    assert _read(tmp_path / "frame_10000.txt") == ["frame 10000", "2.0 4.0"]
