"""Common utilities for forkjob."""

from .display import format_duration, separator, strip_ansi, style, truncate
from .logger import setup_logger

__all__ = [
    # Display formatting
    "format_duration",
    "separator",
    "strip_ansi",
    "style",
    "truncate",
    # Logging
    "setup_logger",
]
