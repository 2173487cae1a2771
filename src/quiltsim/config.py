"""
Configuration management for quiltsim.

Defaults for every engine option live here; a YAML file may override any
subset of them. Keyword arguments passed to `simulate` override both.
"""

import os
from dataclasses import asdict, dataclass, field, fields

import yaml


@dataclass
class TilingConfig:
    """How the simulation grid is cut into tiles."""
    overlap: float = 1 / 6  # fraction of the tile shape, per axis


@dataclass
class MatchingConfig:
    """Patch matching weights and relaxation tolerance."""
    tol: float = 0.1
    overlap_weight: float = 1.0
    hard_weight: float = 1.0


@dataclass
class PathConfig:
    """Tile visiting order."""
    kind: str = "raster"  # raster, dilation, random, data
    baseline: str = "raster"  # order of the remaining tiles for kind=data


@dataclass
class SimulationConfig:
    """Realization loop settings."""
    nreal: int = 1
    seed: int = None
    workers: int = 1


@dataclass
class ReuseConfig:
    """Voxel-reuse estimation settings."""
    nreal: int = 10


@dataclass
class TracingConfig:
    """Runtime tracing."""
    enabled: bool = False
    level: str = "INFO"
    file_path: str = None
    json_output: bool = False


@dataclass
class DebugConfig:
    """Debug statistics and artifact output."""
    enabled: bool = False
    artifacts_dir: str = None


@dataclass
class QuiltingConfig:
    """Complete engine configuration."""
    tiling: TilingConfig = field(default_factory=TilingConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    path: PathConfig = field(default_factory=PathConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    reuse: ReuseConfig = field(default_factory=ReuseConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)


def load_config(config_path=None):
    """
    Load configuration from a YAML file.

    Missing sections and keys keep their defaults; unknown keys are ignored.
    """
    config = QuiltingConfig()

    if config_path and os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}

        config = _merge_config(config, yaml_data)

    return config


def _merge_config(config, yaml_data):
    for section in fields(config):
        values = yaml_data.get(section.name)
        if not isinstance(values, dict):
            continue
        target = getattr(config, section.name)
        for key, value in values.items():
            if hasattr(target, key):
                setattr(target, key, value)
    return config


def save_default_config(path):
    """Write the default configuration to a YAML file for reference."""
    yaml_data = asdict(QuiltingConfig())

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(yaml_data, f, default_flow_style=False, sort_keys=False)
