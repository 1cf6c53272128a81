#!/usr/bin/env python3
"""
Command-line entry point for Particle-Link.

Links the particle analyzer output of a data folder into trajectories and
writes the merged trajectory dataset.
"""

import argparse
import logging
import os
import sys

from particle_link import __version__
from particle_link.config import LinkingConfig
from particle_link.errors import (
    ConfigurationError,
    DetectionFormatError,
    LinkerMemoryError,
    WorkspaceError,
)


def setup_logging(log_level=logging.INFO):
    """Set up console logging for the linking run."""
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logger = logging.getLogger(__name__)
    logger.info("Particle-Link starting up...")
    logger.info(f"Python version: {sys.version}")
    logger.info(f"Working directory: {os.getcwd()}")


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Particle-Link - link particle detections into trajectories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  particle-link --config linking.yaml
  particle-link --data-dir ./experiment --linker-jar tools/ParticleLinker.jar
  particle-link --config linking.yaml --workers 4 --memory-per-process 2048
        """,
    )

    parser.add_argument("--config", type=str, help="YAML file with linking settings")
    parser.add_argument("--data-dir", type=str, help="Experiment data directory")
    parser.add_argument("--linker-jar", type=str, help="Path to ParticleLinker.jar")
    parser.add_argument("--workers", type=int, help="Maximum number of linker processes")
    parser.add_argument("--memory", type=int, help="Total memory budget in MB")
    parser.add_argument(
        "--memory-per-process", type=int, help="Memory per linker process in MB"
    )
    parser.add_argument("--link-range", type=int, help="Frames a trajectory may skip")
    parser.add_argument(
        "--displacement", type=float, help="Maximum displacement between two frames"
    )
    parser.add_argument("--fps", type=float, help="Video frame rate")
    parser.add_argument(
        "--filter", action="store_true", help="Also write a filtered trajectory dataset"
    )
    parser.add_argument(
        "--keep-logs", action="store_true", help="Keep linker logs after a clean run"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Set the logging level (default: INFO)",
    )
    parser.add_argument(
        "--version", action="version", version=f"Particle-Link {__version__}"
    )

    return parser.parse_args(argv)


def build_config(args):
    """Load the YAML config (if any) and apply command line overrides."""
    config = LinkingConfig.from_yaml(args.config) if args.config else LinkingConfig()
    overrides = {
        "data_dir": args.data_dir,
        "linker_jar": args.linker_jar,
        "max_workers": args.workers,
        "memory_mb": args.memory,
        "memory_per_process_mb": args.memory_per_process,
        "link_range": args.link_range,
        "displacement": args.displacement,
        "fps": args.fps,
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, value)
    if args.filter:
        config.enable_filtering = True
    if args.keep_logs:
        config.keep_logs = True
    return config


def main(argv=None):
    """
    Application entry point.

    Returns:
        int: Process exit code (0 on success, 1 on a fatal error)
    """
    args = parse_arguments(argv)
    setup_logging(getattr(logging, args.log_level.upper()))
    logger = logging.getLogger(__name__)

    # Import after logging is configured so module loggers inherit it
    from particle_link.core.pipeline import run_linking

    try:
        config = build_config(args)
        run = run_linking(config)
    except (ConfigurationError, DetectionFormatError, WorkspaceError) as e:
        logger.error(str(e))
        return 1
    except LinkerMemoryError as e:
        logger.error(str(e))
        if e.run is not None and e.run.output_path is not None:
            logger.error(f"Partial trajectory dataset saved to {e.run.output_path}")
        return 1

    logger.info(
        f"Linked {len(run.report.succeeded)} videos into "
        f"{run.trajectories['id'].nunique() if not run.trajectories.empty else 0} "
        f"trajectories; {len(run.empty_videos)} without particles, "
        f"{len(run.report.tool_errors)} linker failures"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
