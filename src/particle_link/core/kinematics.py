"""
Per-fix movement metrics for linked trajectories.

For every fix of a trajectory, ordered by frame:

- step_length:   distance from the previous fix
- step_duration: frame difference to the previous fix times the frame period
- step_speed:    step_length / step_duration
- gross_disp:    cumulative sum of step lengths (0 at the first fix)
- net_disp:      distance from the trajectory's first fix (0 at the first fix)
- abs_angle:     direction of the step vector, radians in (-pi, pi]
- rel_angle:     turning angle between consecutive steps, radians in (-pi, pi]

Metrics that need a predecessor (two fixes) or two steps (three fixes) are
NaN where they cannot be computed. Zero-length steps have no direction, so
their angles are NaN as well.
"""
import logging

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

KINEMATIC_COLUMNS = [
    "step_length",
    "step_duration",
    "step_speed",
    "gross_disp",
    "net_disp",
    "abs_angle",
    "rel_angle",
]


def wrap_angle_rad(theta):
    """Wrap angles (radians) into (-pi, pi]."""
    theta = np.asarray(theta, dtype=float)
    return np.pi - np.mod(np.pi - theta, 2 * np.pi)


def compute_kinematics(df, frame_period=1.0, id_col="id"):
    """
    Add movement metrics to every fix.

    Args:
        df: Fixes with ``id_col``, ``frame``, ``x`` and ``y`` columns
        frame_period: Seconds per frame (1 / fps)
        id_col: Column identifying the trajectory

    Returns:
        pd.DataFrame: Copy of ``df`` (row order unchanged) with the columns in
        ``KINEMATIC_COLUMNS`` added.
    """
    out = df.copy()
    if out.empty:
        for col in KINEMATIC_COLUMNS:
            out[col] = pd.Series(dtype=float)
        return out
    if not out.index.is_unique:
        out = out.reset_index(drop=True)

    s = out.sort_values([id_col, "frame"], kind="mergesort")
    groups = s[id_col]
    g = s.groupby(id_col, sort=False)

    x = s["x"].astype(float)
    y = s["y"].astype(float)
    dx = g["x"].diff().astype(float)
    dy = g["y"].diff().astype(float)
    dframe = g["frame"].diff().astype(float)

    step_length = np.hypot(dx, dy)
    step_duration = dframe * float(frame_period)
    step_speed = step_length / step_duration.where(step_duration != 0)

    gross_disp = step_length.fillna(0.0).groupby(groups).cumsum()

    x0 = g["x"].transform("first").astype(float)
    y0 = g["y"].transform("first").astype(float)
    net_disp = np.hypot(x - x0, y - y0)

    abs_angle = pd.Series(wrap_angle_rad(np.arctan2(dy, dx)), index=s.index)
    abs_angle = abs_angle.where(step_length > 0)

    prev_angle = abs_angle.groupby(groups).shift(1)
    rel_angle = pd.Series(wrap_angle_rad(abs_angle - prev_angle), index=s.index)

    metrics = {
        "step_length": step_length,
        "step_duration": step_duration,
        "step_speed": step_speed,
        "gross_disp": gross_disp,
        "net_disp": net_disp,
        "abs_angle": abs_angle,
        "rel_angle": rel_angle,
    }
    for col, values in metrics.items():
        out[col] = values.reindex(out.index)

    logger.info(
        f"Computed movement metrics for {groups.nunique()} trajectories ({len(out)} fixes)"
    )
    return out


def trajectory_summary(df, frame_period=1.0, id_col="id"):
    """
    Aggregate per-trajectory statistics from fixes with movement metrics.

    Returns:
        pd.DataFrame: One row per trajectory with n_fixes, first/last frame,
        duration, detection_freq, gross_disp, net_disp, mean_speed,
        median_step_length and straightness (net / gross displacement).
    """
    if df.empty:
        return pd.DataFrame(
            columns=[
                id_col, "file", "n_fixes", "first_frame", "last_frame", "duration",
                "detection_freq", "gross_disp", "net_disp", "mean_speed",
                "median_step_length", "straightness",
            ]
        )
    if "step_length" not in df.columns:
        df = compute_kinematics(df, frame_period, id_col)

    s = df.sort_values([id_col, "frame"], kind="mergesort")
    g = s.groupby(id_col, sort=False)
    summary = pd.DataFrame(
        {
            "n_fixes": g.size(),
            "first_frame": g["frame"].min(),
            "last_frame": g["frame"].max(),
            "gross_disp": g["gross_disp"].last(),
            "net_disp": g["net_disp"].last(),
            "mean_speed": g["step_speed"].mean(),
            "median_step_length": g["step_length"].median(),
        }
    )
    if "file" in s.columns:
        summary.insert(0, "file", g["file"].first())
    span = summary["last_frame"] - summary["first_frame"]
    summary["duration"] = span * float(frame_period)
    summary["detection_freq"] = summary["n_fixes"] / (span + 1)
    summary["straightness"] = summary["net_disp"] / summary["gross_disp"].where(
        summary["gross_disp"] > 0
    )
    return summary.reset_index()
