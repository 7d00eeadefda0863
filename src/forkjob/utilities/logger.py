# forkjob/utilities/logger.py
"""File logging for job runs, shared by the parent and its children."""
from __future__ import annotations

import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

__all__ = ["LOG_FORMAT", "log_file_path", "setup_logger"]

# processName tells the parent's records from each forkjob:worker-N child
LOG_FORMAT = "%(asctime)s %(levelname)s %(processName)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def log_file_path(location: str | Path, filename_prefix: Optional[str] = None) -> Path:
    """
    Resolve ``<dir>/<prefix>_<YYYYmmdd_HHMMSS>.log`` for ``location``.

    A job script (anything with a suffix) logs next to itself and, unless
    ``filename_prefix`` is given, under its own name. A directory logs
    under ``forkjob``.
    """
    location = Path(location).expanduser()
    if location.suffix or location.is_file():
        directory, default_prefix = location.parent, location.stem
    else:
        directory, default_prefix = location, "forkjob"
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return directory / f"{filename_prefix or default_prefix}_{stamp}.log"


def setup_logger(
    location: str | Path,
    *,
    level: int = logging.INFO,
    filename_prefix: Optional[str] = None,
    console: bool = False,
    rotate: bool = False,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """
    Send root logging to a fresh file for this run.

    Args:
        location: Log directory, or the job script to log beside
        level: Level for the root logger and every handler added here
        filename_prefix: Overrides the prefix derived from ``location``
        console: Also echo records to stderr
        rotate: Roll the file over at ``max_bytes``
        force: Drop (and close) the root handlers already installed

    Returns:
        Path of the log file
    """
    log_path = log_file_path(location, filename_prefix)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    if force:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)

    handlers: List[logging.Handler] = [
        RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        if rotate
        else logging.FileHandler(log_path, mode="w", encoding="utf-8")
    ]
    if console:
        handlers.append(logging.StreamHandler())

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    root.info("Logging to: %s", log_path)
    return log_path
