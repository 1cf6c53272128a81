from __future__ import annotations

from pathlib import Path

import pytest

from particle_link.config import LinkingConfig
from particle_link.errors import ConfigurationError


def test_yaml_round_trip_keeps_unknown_keys(tmp_path: Path) -> None:
    config = LinkingConfig(data_dir=str(tmp_path), memory_mb=2048, link_range=3, extra={"video_format": "avi"})
    path = tmp_path / "cfg" / "linking.yaml"
    config.export_yaml(path)

    loaded = LinkingConfig.from_yaml(path)
    assert loaded == config
    assert loaded.extra == {"video_format": "avi"}


def test_from_yaml_rejects_non_mapping(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ConfigurationError):
        LinkingConfig.from_yaml(path)


def test_folders_resolve_against_data_dir(tmp_path: Path) -> None:
    config = LinkingConfig(data_dir=str(tmp_path), log_folder=str(tmp_path / "elsewhere"))
    assert config.particle_dir == tmp_path / "particle_data"
    assert config.trajectory_dir == tmp_path / "trajectory_data"
    assert config.log_dir == tmp_path / "elsewhere"
    assert LinkingConfig(fps=25).frame_period == pytest.approx(0.04)


def test_memory_defaults_to_available(monkeypatch) -> None:
    monkeypatch.setattr("particle_link.config.available_memory_mb", lambda: 3000)
    monkeypatch.setattr("particle_link.config.cpu_count", lambda: 6)
    config = LinkingConfig()
    assert config.resolved_memory_mb() == 3000
    assert config.resolved_cpu_count() == 6
    assert LinkingConfig(memory_mb=100, cpu_count=2).resolved_memory_mb() == 100


@pytest.mark.parametrize(
    "kwargs, match",
    [
        (dict(memory_mb=256, memory_per_process_mb=512), "larger than the memory"),
        (dict(memory_per_process_mb=0), "memory_per_process_mb"),
        (dict(max_workers=0), "max_workers"),
        (dict(link_range=0), "link_range"),
        (dict(displacement=0), "displacement"),
        (dict(fps=0), "fps"),
        (dict(start_index=-1), "start_index"),
    ],
)
def test_validate_rejects_bad_settings(kwargs, match) -> None:
    values = dict(memory_mb=4096)
    values.update(kwargs)
    with pytest.raises(ConfigurationError, match=match):
        LinkingConfig(**values).validate()


def test_validate_checks_paths(tmp_path: Path) -> None:
    config = LinkingConfig(data_dir=str(tmp_path), memory_mb=4096, linker_jar=str(tmp_path / "missing.jar"))
    config.validate()
    with pytest.raises(ConfigurationError, match="ParticleLinker not found"):
        config.validate(check_paths=True)

    jar = tmp_path / "ParticleLinker.jar"
    jar.write_bytes(b"")
    config.linker_jar = str(jar)
    with pytest.raises(ConfigurationError, match="Particle data folder"):
        config.validate(check_paths=True)
    config.particle_dir.mkdir()
    config.validate(check_paths=True)


def test_from_yaml_wraps_parse_and_read_errors(tmp_path: Path) -> None:
    bad = tmp_path / "bad.yaml"
    bad.write_text("data_dir: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Invalid YAML"):
        LinkingConfig.from_yaml(bad)

    with pytest.raises(ConfigurationError, match="Cannot read config file"):
        LinkingConfig.from_yaml(tmp_path / "missing.yaml")
