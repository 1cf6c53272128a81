"""
Cleaning of linked trajectories.

Linking keeps every chain of detections, including noise that barely moves or
flickers in and out of view. ``filter_trajectories`` drops trajectories that
fall below configurable thresholds.
"""

import logging

from .kinematics import trajectory_summary

logger = logging.getLogger(__name__)


def filter_trajectories(
    df,
    min_net_disp=0.0,
    min_duration=0.0,
    min_detection_freq=0.0,
    min_median_step_length=0.0,
    frame_period=1.0,
    id_col="id",
):
    """
    Keep trajectories that meet every threshold.

    Args:
        df: Fixes with movement metrics (or at least id/frame/x/y)
        min_net_disp: Minimum net displacement at the last fix
        min_duration: Minimum duration (seconds) from first to last fix
        min_detection_freq: Minimum fraction of frames in the trajectory's
            span in which the particle was detected
        min_median_step_length: Minimum median step length
        frame_period: Seconds per frame
        id_col: Trajectory id column

    Returns:
        tuple: (filtered DataFrame, statistics dict)
    """
    stats = {
        "original_count": int(df[id_col].nunique()) if not df.empty else 0,
        "removed_net_disp": 0,
        "removed_duration": 0,
        "removed_detection_freq": 0,
        "removed_median_step_length": 0,
        "final_count": 0,
    }
    if df.empty:
        return df.copy(), stats

    summary = trajectory_summary(df, frame_period=frame_period, id_col=id_col)
    keep = summary[id_col].notna()

    # A trajectory failing several tests is counted under the first one
    checks = [
        ("removed_net_disp", summary["net_disp"].fillna(0.0) >= min_net_disp),
        ("removed_duration", summary["duration"] >= min_duration),
        ("removed_detection_freq", summary["detection_freq"] >= min_detection_freq),
        (
            "removed_median_step_length",
            summary["median_step_length"].fillna(0.0) >= min_median_step_length,
        ),
    ]
    for key, passed in checks:
        stats[key] = int((keep & ~passed).sum())
        keep &= passed

    kept_ids = set(summary.loc[keep, id_col])
    filtered = df[df[id_col].isin(kept_ids)].copy()
    stats["final_count"] = len(kept_ids)

    logger.info(f"Trajectory filtering stats: {stats}")
    return filtered, stats
