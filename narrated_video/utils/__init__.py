"""Utility functions for the Narrated Video Composer."""

from narrated_video.utils.io_utils import is_non_empty_file, remove_quietly, run_output_paths, slugify
from narrated_video.utils.text_utils import escape_filter_value, spoken_seconds

__all__ = [
    "escape_filter_value",
    "is_non_empty_file",
    "remove_quietly",
    "run_output_paths",
    "slugify",
    "spoken_seconds",
]
