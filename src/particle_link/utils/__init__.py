"""
Utility modules for Particle-Link.

Host resource probes used to size the linking worker pool.
"""

from .system import available_memory_mb, cpu_count

__all__ = ["available_memory_mb", "cpu_count"]
