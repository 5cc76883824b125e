"""
Configuration management for the expression pipeline.

This module provides configuration file loading and saving for
PipelineConfig, supporting YAML and JSON formats.
"""

import json
import logging
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .classifier import ClassifierConfig
from .extractor import ExtractorConfig
from .pipeline import PipelineConfig
from .smoother import SmootherConfig

logger = logging.getLogger(__name__)

# Default config file locations
DEFAULT_CONFIG_PATHS = [
    Path("avatar_config.yaml"),
    Path("avatar_config.json"),
    Path.home() / ".config" / "avatar_expression" / "config.yaml",
    Path.home() / ".config" / "avatar_expression" / "config.json",
]


def load_config(
    config_path: Optional[Union[str, Path]] = None
) -> PipelineConfig:
    """
    Load pipeline configuration from file.

    Supports YAML and JSON formats. If no path is specified, searches
    default locations.

    Args:
        config_path: Path to config file, or None to search defaults

    Returns:
        PipelineConfig instance

    Raises:
        FileNotFoundError: If an explicit config path does not exist
        ValueError: If config file is invalid
    """
    # Find config file
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
    else:
        path = None
        for default_path in DEFAULT_CONFIG_PATHS:
            if default_path.exists():
                path = default_path
                break

        if path is None:
            logger.info("No config file found, using defaults")
            return PipelineConfig()

    logger.info(f"Loading config from {path}")

    try:
        with open(path, 'r') as f:
            if path.suffix in ('.yaml', '.yml'):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise ValueError(f"Failed to parse config file: {e}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Config root must be a mapping, got {type(data).__name__}")

    return _dict_to_config(data)


def save_config(
    config: PipelineConfig,
    config_path: Union[str, Path],
    format: str = "auto"
) -> None:
    """
    Save pipeline configuration to file.

    Args:
        config: Configuration to save
        config_path: Output file path
        format: "yaml", "json", or "auto" (detect from extension)
    """
    path = Path(config_path)

    if format == "auto":
        if path.suffix in ('.yaml', '.yml'):
            format = "yaml"
        else:
            format = "json"

    data = _config_to_dict(config)

    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        if format == "yaml":
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(data, f, indent=2)

    logger.info(f"Saved config to {path}")


def _section(cls, data: Any):
    """Build a section dataclass from a dict, ignoring unknown keys."""
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ValueError(f"Section for {cls.__name__} must be a mapping")
    known = {f.name for f in fields(cls) if f.init}
    unknown = set(data) - known
    if unknown:
        logger.warning(f"Ignoring unknown {cls.__name__} keys: {sorted(unknown)}")
    return cls(**{k: v for k, v in data.items() if k in known})


def _dict_to_config(data: Dict[str, Any]) -> PipelineConfig:
    """Convert dictionary to PipelineConfig."""
    return PipelineConfig(
        extractor=_section(ExtractorConfig, data.get('extractor')),
        smoother=_section(SmootherConfig, data.get('smoother')),
        classifier=_section(ClassifierConfig, data.get('classifier')),
        log_performance=bool(data.get('log_performance', True)),
    )


def _config_to_dict(config: PipelineConfig) -> Dict[str, Any]:
    """Convert PipelineConfig to dictionary."""
    return {
        'extractor': asdict(config.extractor),
        'smoother': asdict(config.smoother),
        'classifier': asdict(config.classifier),
        'log_performance': config.log_performance,
    }


def create_default_config(output_path: Union[str, Path]) -> None:
    """
    Create a default configuration file with comments.

    Args:
        output_path: Path to write the config file
    """
    path = Path(output_path)

    if path.suffix in ('.yaml', '.yml'):
        content = """# Avatar Expression Configuration
# ===============================

# Landmark measurement remapping
extractor:
  # Brow-to-eye gap (pixels) range, mapped onto [brow_out_at_min, brow_out_at_max]
  brow_gap_min: 20.0
  brow_gap_max: 50.0
  brow_out_at_min: 20.0
  brow_out_at_max: -40.0
  # Lip / eyelid distances (pixels) mapped onto [0, 1]
  mouth_distance_min: 5.0
  mouth_distance_max: 30.0
  eye_distance_min: 3.0
  eye_distance_max: 15.0

# Per-channel noise suppression
smoother:
  # Raw changes smaller than this are ignored
  dead_zone: 1.5
  # Number of raw samples averaged
  buffer_size: 3
  # EMA weight on the old value, chosen by velocity
  slow_velocity: 1.0
  medium_velocity: 3.0
  fast_velocity: 15.0
  alpha_still: 0.08
  alpha_slow: 0.15
  alpha_fast: 0.5
  # A change must exceed the threshold on sustain_frames consecutive
  # frames (targets within target_tolerance) before it is committed
  hysteresis_threshold: 2.0
  target_tolerance: 0.5
  sustain_frames: 2

# Brow expression rules
classifier:
  surprised_y: -15.0
  surprised_y_full: -40.0
  angry_angle: -8.0
  angry_angle_full: 20.0
  sad_angle: 6.0
  sad_angle_full: 15.0
  neutral_y: 10.0
  neutral_angle: 5.0
  neutral_confidence: 0.9
  # A new confident expression is held at least this long
  min_lock_duration_ms: 200.0
  confidence_threshold: 0.8

# Record per-tick latency statistics
log_performance: true
"""
    else:
        content = json.dumps(_config_to_dict(PipelineConfig()), indent=2)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        f.write(content)

    logger.info(f"Created default config at {path}")
