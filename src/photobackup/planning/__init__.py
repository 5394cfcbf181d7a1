"""Destination path planning for exported assets."""

from .models import ExportTarget
from .planner import LIVE_VIDEO_EXTENSION, PathPlanner, example_path, normalize_subdirectory

__all__ = [
    "ExportTarget",
    "PathPlanner",
    "LIVE_VIDEO_EXTENSION",
    "example_path",
    "normalize_subdirectory",
]
