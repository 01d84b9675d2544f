"""
Path utilities for the Black Marble nightlights project.

This module provides shared functions for managing scratch paths
and directory creation consistently across the project.
"""

import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union


def ensure_directory(path: Union[str, Path], create_parents: bool = True) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path
        create_parents: Whether to create parent directories

    Returns:
        Path object for the directory
    """
    path_obj = Path(path)
    path_obj.mkdir(parents=create_parents, exist_ok=True)
    return path_obj


def get_scratch_path(scratch_dir: Optional[Union[str, Path]] = None) -> Path:
    """
    Get the scratch directory used for transient downloads.

    Args:
        scratch_dir: Configured scratch directory; defaults to a new, private
            folder under the system temp directory on every call

    Returns:
        Path to the (existing) scratch directory
    """
    if scratch_dir is None:
        return Path(tempfile.mkdtemp(prefix="blackmarble_ntl_"))
    return ensure_directory(scratch_dir)


def remove_directory(path: Union[str, Path]) -> None:
    """Remove a directory tree if it exists."""
    shutil.rmtree(path, ignore_errors=True)
