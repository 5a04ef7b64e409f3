"""Utility modules for clipingest."""

from clipingest.utils.progress import INACTIVE_PROGRESS, calculate_progress, progress_percentage
from clipingest.utils.sizes import format_file_size

__all__ = [
    "INACTIVE_PROGRESS",
    "calculate_progress",
    "progress_percentage",
    "format_file_size",
]
