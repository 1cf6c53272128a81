"""Command-line launcher for Particle-Link."""

from .launcher import main, parse_arguments, setup_logging

__all__ = ["main", "parse_arguments", "setup_logging"]
