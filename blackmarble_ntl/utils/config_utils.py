"""
Configuration utilities for the Black Marble nightlights project.

This module provides shared functions for loading configuration files
and managing package paths.
"""

import yaml
from pathlib import Path
from typing import Dict, Any

DEFAULT_CONFIG_PATH = "config/blackmarble_config.yaml"


def get_package_root() -> Path:
    """
    Get the package root directory.

    Returns:
        Path to the blackmarble_ntl package directory
    """
    # Go up from blackmarble_ntl/utils to the package
    current_file = Path(__file__).resolve()
    return current_file.parent.parent


def load_config(
    config_path: str = DEFAULT_CONFIG_PATH, relative_to_package_root: bool = True
) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to the configuration file
        relative_to_package_root: If True, config_path is relative to the package root

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    config_file = Path(config_path)
    if relative_to_package_root and not config_file.is_absolute():
        config_file = get_package_root() / config_path

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
        return config or {}
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Invalid YAML in config file {config_file}: {e}")


def get_config_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation.

    Args:
        config: Configuration dictionary
        key_path: Dot-separated path to the key (e.g., 'download.max_workers')
        default: Default value if key doesn't exist

    Returns:
        Configuration value or default
    """
    keys = key_path.split(".")
    value = config

    try:
        for key in keys:
            value = value[key]
    except (KeyError, TypeError):
        return default
    return default if value is None else value
