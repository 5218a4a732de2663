"""Utility modules for shared functionality."""

from .constants import (
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_MARKER_PATH,
    DEFAULT_PRESERVED_PATHS,
    DEFAULT_README_PATH,
    DEFAULT_WORKFLOW_PATH,
)
from .git import GitCommandError, run_git

__all__ = [
    "DEFAULT_CONFIG_FILENAME",
    "DEFAULT_MARKER_PATH",
    "DEFAULT_PRESERVED_PATHS",
    "DEFAULT_README_PATH",
    "DEFAULT_WORKFLOW_PATH",
    "GitCommandError",
    "run_git",
]
