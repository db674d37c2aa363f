"""
Configuration management for rasterpaths.

Loads YAML configuration with sensible defaults for every compiler stage.
"""

import os
from dataclasses import dataclass, field, fields

import yaml

from rasterpaths.models import DrawingAccuracy, DrawingSpeed, LineOrder, ScalingMode, ThresholdMethod


@dataclass
class ThresholdConfig:
    """Configuration for binarization."""
    method: str = "otsu"  # otsu, kapur, sauvola, wolf, bernsen
    sauvola_k: float = 0.5
    sauvola_r: float = 128.0  # on the 8-bit scale, rescaled for deeper grids
    wolf_k: float = 0.5
    window_fraction: float = 0.05
    min_window: int = 5
    max_window: int = 50
    bernsen_window: int = 15


@dataclass
class ScalingConfig:
    """Configuration for fitting the mask into the target region."""
    mode: str = "fit"  # stretch, fit, fill, center, tile
    min_size: int = 10


@dataclass
class SamplingConfig:
    """Configuration for ink sampling."""
    accuracy: str = "accurate"  # fast, balanced, accurate
    step: int = None  # overrides accuracy when set


@dataclass
class TraceConfig:
    """Configuration for path tracing."""
    max_distance: int = 3
    min_path_length: int = 3


@dataclass
class ReplayConfig:
    """Configuration for the actuator hand-off."""
    speed: str = "fast"
    line_order: str = "in_order"
    seed: int = None
    interpolate: bool = True


@dataclass
class TracingConfig:
    """Configuration for runtime tracing."""
    enabled: bool = False
    level: str = "INFO"
    file_path: str = None
    json_output: bool = False


@dataclass
class DebugConfig:
    """Configuration for debug artifact generation."""
    enabled: bool = False
    max_edge_scale: int = 1600


@dataclass
class PipelineConfig:
    """Complete pipeline configuration."""
    threshold: ThresholdConfig = field(default_factory=ThresholdConfig)
    scaling: ScalingConfig = field(default_factory=ScalingConfig)
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    trace: TraceConfig = field(default_factory=TraceConfig)
    replay: ReplayConfig = field(default_factory=ReplayConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)

    @property
    def threshold_method(self):
        return ThresholdMethod(self.threshold.method)

    @property
    def scaling_mode(self):
        return ScalingMode(self.scaling.mode)

    @property
    def line_order(self):
        return LineOrder(self.replay.line_order)

    @property
    def drawing_speed(self):
        return DrawingSpeed(self.replay.speed)

    @property
    def step(self):
        """Sampling stride: explicit step if set, otherwise from accuracy."""
        if self.sampling.step is not None:
            return max(int(self.sampling.step), 1)
        return DrawingAccuracy(self.sampling.accuracy).step


SECTIONS = ("threshold", "scaling", "sampling", "trace", "replay", "tracing", "debug")


def load_config(config_path=None):
    """
    Load configuration from YAML file.

    Falls back to defaults for any missing values. Enum-valued settings are
    checked here so a typo fails before any pixels are touched.
    """
    config = PipelineConfig()

    if config_path and os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}

        config = _merge_config(config, yaml_data)

    validate_config(config)
    return config


def _merge_config(config, yaml_data):
    """Merge YAML data into config dataclass."""
    for section in SECTIONS:
        if section not in yaml_data:
            continue
        target = getattr(config, section)
        for key, value in (yaml_data[section] or {}).items():
            if hasattr(target, key):
                setattr(target, key, value)

    return config


def validate_config(config):
    """Raise ValueError for enum settings that name no known option."""
    checks = [
        (ThresholdMethod, config.threshold.method, "threshold.method"),
        (ScalingMode, config.scaling.mode, "scaling.mode"),
        (DrawingAccuracy, config.sampling.accuracy, "sampling.accuracy"),
        (DrawingSpeed, config.replay.speed, "replay.speed"),
        (LineOrder, config.replay.line_order, "replay.line_order"),
    ]
    for enum_cls, value, name in checks:
        try:
            enum_cls(value)
        except ValueError:
            options = ", ".join(m.value for m in enum_cls)
            raise ValueError(f"Invalid {name}: {value!r} (expected one of {options})")

    if config.trace.max_distance < 0:
        raise ValueError(f"Invalid trace.max_distance: {config.trace.max_distance}")


def config_to_dict(config):
    """Plain nested dict of every section, suitable for YAML."""
    return {
        section: {f.name: getattr(getattr(config, section), f.name) for f in fields(getattr(config, section))}
        for section in SECTIONS
    }


def save_default_config(path):
    """Save default configuration to YAML file for reference."""
    yaml_data = config_to_dict(PipelineConfig())

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(yaml_data, f, default_flow_style=False, sort_keys=False)
