"""
Configuration management for strokefit.

Dataclass sections with defaults, optionally overridden from a YAML file.
A family cost of `.inf` in YAML marks that family as not needed.
"""

import os
from dataclasses import asdict, dataclass, field, fields

import yaml


INFINITY = float("inf")


@dataclass
class FittingConfig:
    """Configuration for primitive fitting."""
    algorithm: str = "Adjust"  # "Default" or "Adjust"
    error_threshold: float = 1.0
    scale: float = 1.0  # multiplies error_threshold, for strokes drawn at other resolutions
    line_cost: float = 0.0
    arc_cost: float = 5.0
    clothoid_cost: float = 10.0
    inflection_cost: float = 5.0  # > 0 turns on inflection accounting
    curve_adjust_damping: float = 0.5

    @property
    def scaled_error_threshold(self):
        return self.error_threshold * self.scale


@dataclass
class ResampleConfig:
    """Configuration for stroke resampling and corner marking."""
    enabled: bool = True
    spacing: float = 3.0
    duplicate_tolerance: float = 1e-6
    corner_angle_deg: float = 60.0


@dataclass
class TracingConfig:
    """Tracer settings used when the command line does not ask for tracing."""
    enabled: bool = False
    level: str = "INFO"
    file_path: str = None
    json_output: bool = False


@dataclass
class DebugConfig:
    """Candidate SVG dump."""
    enabled: bool = False
    samples_per_curve: int = 32
    margin: float = 10.0


@dataclass
class PipelineConfig:
    fitting: FittingConfig = field(default_factory=FittingConfig)
    resample: ResampleConfig = field(default_factory=ResampleConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)


def load_config(config_path=None):
    """
    Defaults, overridden section by section from a YAML file when one exists.
    """
    if not config_path or not os.path.exists(config_path):
        return PipelineConfig()

    with open(config_path, "r", encoding="utf-8") as f:
        yaml_data = yaml.safe_load(f)

    return _merge_config(PipelineConfig(), yaml_data or {})


def _merge_config(config, yaml_data):
    """Copy known keys of each YAML section onto the matching dataclass."""
    for section in fields(config):
        values = yaml_data.get(section.name)
        if not isinstance(values, dict):
            continue
        target = getattr(config, section.name)
        for key, value in values.items():
            if hasattr(target, key):
                setattr(target, key, _coerce(getattr(target, key), value))
    return config


def _coerce(current, value):
    # YAML reads "inf" as a string unless written as .inf
    if isinstance(current, float) and isinstance(value, (int, str)) and not isinstance(value, bool):
        return float(value)
    return value


def save_default_config(path):
    """Write the defaults as YAML, as a starting point for editing."""
    yaml_data = asdict(PipelineConfig())
    # Trace files are chosen per run
    del yaml_data["tracing"]["file_path"]

    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(yaml_data, f, default_flow_style=False, sort_keys=False)
