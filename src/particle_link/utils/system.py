"""
Host resource probes used to size the linker worker pool.
"""

import logging
import os

import psutil

logger = logging.getLogger(__name__)


def available_memory_mb(fraction=1.0):
    """
    Return the memory currently available to new processes.

    Args:
        fraction: Share of the available memory to report (0-1]

    Returns:
        int: Available memory in MB
    """
    available = psutil.virtual_memory().available / (1024**2)
    budget = int(available * fraction)
    logger.debug(
        f"Available memory: {available:.0f} MB, budget: {budget} MB ({fraction*100:.0f}%)"
    )
    return budget


def cpu_count():
    """Number of logical cores, falling back to 1 when undetectable."""
    count = os.cpu_count()
    if not count:
        logger.warning("Could not detect CPU count, assuming a single core")
        return 1
    return count
