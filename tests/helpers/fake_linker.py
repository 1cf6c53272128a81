"""
Stand-in for ParticleLinker.jar used by the tests.

Reads ``frame_NNNN.txt`` files and links particle ``k`` of every frame into
trajectory ``k + 1``. ``--mode`` selects a failure to simulate.
"""

import argparse
import sys
import time
from pathlib import Path


def main(argv=None):
    parser = argparse.ArgumentParser()
    parser.add_argument("input_dir")
    parser.add_argument("output_file")
    parser.add_argument("--mode", default="ok")
    parser.add_argument("--calls", default=None)
    args = parser.parse_args(argv)

    frame_files = sorted(Path(args.input_dir).glob("frame_*.txt"))
    if args.calls:
        with open(args.calls, "a", encoding="utf-8") as f:
            f.write(f"{Path(args.output_file).name}\t{len(frame_files)}\n")

    print(f"ParticleLinker: {len(frame_files)} frames in {args.input_dir}")
    if args.mode == "crash":
        print("Exception in thread main java.lang.NullPointerException", file=sys.stderr)
        return 1
    if args.mode == "silent":
        return 0
    if args.mode == "sleep":
        time.sleep(30)
        return 0

    rows = []
    for path in frame_files:
        lines = path.read_text(encoding="utf-8").splitlines()
        frame = int(lines[0].split()[1])
        for k, line in enumerate(lines[1:]):
            x, y = line.split()[:2]
            rows.append((frame, float(x), float(y), k + 1))

    if args.mode == "oom":
        print("Exception in thread main java.lang.OutOfMemoryError: Java heap space", file=sys.stderr)
        rows = rows[: len(rows) // 2]

    with open(args.output_file, "w", encoding="utf-8") as f:
        f.write("frame\tx\ty\ttrajectory\n")
        for frame, x, y, traj in rows:
            f.write(f"{frame}\t{x}\t{y}\t{traj}\n")
    print("Done linking")
    return 0


if __name__ == "__main__":
    sys.exit(main())
