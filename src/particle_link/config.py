"""
Run configuration for the particle linking pipeline.

Every component receives its settings explicitly from a ``LinkingConfig``;
nothing is read from process-wide state.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigurationError
from .utils.system import available_memory_mb, cpu_count

logger = logging.getLogger(__name__)

ONE_WEEK_SEC = 3600 * 24 * 7


@dataclass
class LinkingConfig:
    """Settings for one linking run."""

    # Folders, relative to data_dir unless absolute
    data_dir: str = "."
    particle_data_folder: str = "particle_data"
    trajectory_data_folder: str = "trajectory_data"
    merged_data_folder: str = "merged_data"
    log_folder: str = "linking_logs"
    work_dir: Optional[str] = None  # root for worker workspaces; None = system temp
    detection_pattern: str = "*.ijout.txt"

    # External linker
    linker_jar: str = "ParticleLinker.jar"
    java_executable: str = "java"
    linker_assets: Optional[str] = None  # copied into every workspace when set
    timeout_sec: int = ONE_WEEK_SEC

    # Resources (MB)
    memory_mb: Optional[int] = None  # None = currently available memory
    memory_per_process_mb: int = 512
    max_workers: int = 1
    min_videos_per_worker: int = 5
    cpu_count: Optional[int] = None

    # Linking
    link_range: int = 1
    displacement: float = 10.0
    start_index: int = 0

    # Movement metrics
    fps: float = 25.0
    pixel_to_scale: Optional[float] = None  # physical units per pixel

    # Trajectory filtering (0 disables a threshold)
    enable_filtering: bool = False
    min_net_disp: float = 0.0
    min_duration: float = 0.0
    min_detection_freq: float = 0.0
    min_median_step_length: float = 0.0

    keep_logs: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def frame_period(self) -> float:
        return 1.0 / float(self.fps)

    def _resolve(self, folder: str) -> Path:
        p = Path(folder).expanduser()
        return p if p.is_absolute() else Path(self.data_dir).expanduser() / p

    @property
    def particle_dir(self) -> Path:
        return self._resolve(self.particle_data_folder)

    @property
    def trajectory_dir(self) -> Path:
        return self._resolve(self.trajectory_data_folder)

    @property
    def merged_dir(self) -> Path:
        return self._resolve(self.merged_data_folder)

    @property
    def log_dir(self) -> Path:
        return self._resolve(self.log_folder)

    def resolved_memory_mb(self) -> int:
        if self.memory_mb is None:
            return available_memory_mb()
        return int(self.memory_mb)

    def resolved_cpu_count(self) -> int:
        if self.cpu_count is None:
            return cpu_count()
        return int(self.cpu_count)

    def validate(self, check_paths: bool = False) -> None:
        """Reject settings that cannot produce a valid run.

        Args:
            check_paths: Also require the linker jar and particle folder to exist.

        Raises:
            ConfigurationError: On the first invalid setting found.
        """
        if self.memory_per_process_mb <= 0:
            raise ConfigurationError("memory_per_process_mb must be positive")
        memory = self.resolved_memory_mb()
        if memory <= 0:
            raise ConfigurationError("memory_mb must be positive")
        if self.memory_per_process_mb > memory:
            raise ConfigurationError(
                f"Machine memory ({memory} MB) needs to be larger than the memory "
                f"per linker process ({self.memory_per_process_mb} MB)."
            )
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1")
        if self.min_videos_per_worker < 1:
            raise ConfigurationError("min_videos_per_worker must be at least 1")
        if self.cpu_count is not None and self.cpu_count < 1:
            raise ConfigurationError("cpu_count must be at least 1")
        if self.link_range < 1:
            raise ConfigurationError("link_range must be at least 1")
        if self.displacement <= 0:
            raise ConfigurationError("displacement must be positive")
        if self.fps <= 0:
            raise ConfigurationError("fps must be positive")
        if self.timeout_sec <= 0:
            raise ConfigurationError("timeout_sec must be positive")
        if self.start_index < 0:
            raise ConfigurationError("start_index cannot be negative")
        if self.pixel_to_scale is not None and self.pixel_to_scale <= 0:
            raise ConfigurationError("pixel_to_scale must be positive when set")

        if check_paths:
            if not Path(self.linker_jar).expanduser().is_file():
                raise ConfigurationError(
                    f"ParticleLinker not found at {self.linker_jar}"
                )
            if not self.particle_dir.is_dir():
                raise ConfigurationError(
                    f"Particle data folder not found: {self.particle_dir}"
                )
            if self.linker_assets and not Path(self.linker_assets).exists():
                raise ConfigurationError(
                    f"Linker assets not found: {self.linker_assets}"
                )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        extra = data.pop("extra", {})
        data.update(extra)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LinkingConfig":
        """Build a config from a mapping; unknown keys are kept in ``extra``."""
        valid_fields = {f.name for f in fields(cls)} - {"extra"}
        known = {k: v for k, v in data.items() if k in valid_fields}
        unknown = {k: v for k, v in data.items() if k not in valid_fields}
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {sorted(unknown)}")
        return cls(**known, extra=unknown)

    @classmethod
    def from_yaml(cls, yaml_path) -> "LinkingConfig":
        try:
            import yaml  # type: ignore
        except Exception as e:
            raise RuntimeError("PyYAML is required to parse config files") from e

        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {yaml_path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {yaml_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Invalid YAML content in {yaml_path}: expected a mapping."
            )
        return cls.from_dict(data)

    def export_yaml(self, yaml_path) -> None:
        import yaml  # type: ignore

        out_path = Path(yaml_path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with out_path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)
