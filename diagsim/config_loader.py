"""Configuration loading and management."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from .config_models import SystemConfig


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""


def load_config(config_path: Optional[Path] = None) -> SystemConfig:
    """
    Load and validate system configuration.

    Args:
        config_path: Path to the configuration file. Defaults to config/config.yml

    Returns:
        Validated SystemConfig instance

    Raises:
        ConfigurationError: If configuration loading or validation fails
    """
    if config_path is None:
        config_path = Path("config/config.yml")

    config_data: dict = {}
    if config_path.exists():
        try:
            with open(config_path) as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML config: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read config file: {e}") from e

    if not isinstance(config_data, dict):
        raise ConfigurationError("Configuration root must be a mapping")

    # Environment variables win over the file
    env_overrides = _load_env_overrides()
    if env_overrides:
        _merge(config_data, env_overrides)

    try:
        return SystemConfig(**config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Configuration validation failed: {e}") from e


def _merge(target: dict, overrides: dict) -> None:
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge(target[key], value)
        else:
            target[key] = value


def _load_env_overrides() -> dict:
    """Load configuration overrides from environment variables."""
    overrides: dict = {}

    env_mappings = {
        "DIAGSIM_LOG_LEVEL": ("logging", "level"),
        "DIAGSIM_LOG_DIR": ("paths", "log_dir"),
        "DIAGSIM_RECORD_DIR": ("paths", "record_dir"),
        "DIAGSIM_NOISE_LEVEL": ("simulation", "noise_level"),
        "DIAGSIM_SEED": ("simulation", "seed"),
        "DIAGSIM_DISPLAY_POINTS": ("simulation", "display_points"),
    }

    for env_var, config_path in env_mappings.items():
        value = os.getenv(env_var)
        if value is not None:
            # Navigate nested dictionary structure
            current = overrides
            for key in config_path[:-1]:
                if key not in current:
                    current[key] = {}
                current = current[key]
            current[config_path[-1]] = value

    return overrides


def create_example_config(output_path: Path = Path("config/config.yml.example")) -> None:
    """Create an example configuration file."""
    example_config = {
        "simulation": {
            "noise_enabled": True,
            "noise_level": 0.004,
            "seed": 1234,
            "capacitance_nf": 69.0,
            "display_points": 50,
            "buffer_capacity": 500
        },
        "paths": {
            "log_dir": "logs",
            "record_dir": "records"
        },
        "logging": {
            "level": "INFO"
        }
    }

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        yaml.dump(example_config, f, default_flow_style=False, sort_keys=False)
