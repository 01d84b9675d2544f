"""
Utilities package for the Black Marble nightlights project.

This package contains shared utility functions used across the project
to reduce code duplication and maintain consistency.
"""

from .config_utils import load_config, get_config_value, get_package_root
from .logging_utils import setup_logging, get_logger
from .path_utils import ensure_directory, get_scratch_path, remove_directory

__all__ = [
    "load_config",
    "get_config_value",
    "get_package_root",
    "setup_logging",
    "get_logger",
    "ensure_directory",
    "get_scratch_path",
    "remove_directory",
]
