# job/export.py
"""CSV export of tabular job output."""
from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

from forkjob.fork.stats import StatsAggregator

__all__ = ["export_csv"]

logger = logging.getLogger(__name__)


def export_csv(
    path: str | Path,
    rows: Sequence[Mapping[str, Any]],
    stats: StatsAggregator,
) -> int:
    """
    Write ``rows`` to ``path`` as CSV and return the number of data lines.

    Headers come from the first row's keys. Missing parent directories are
    created. An empty ``rows`` writes nothing and records an error on
    ``stats``; a successful export records a log entry.
    """
    path = Path(path)
    if not rows:
        stats.add_error(f"No data to export in {path}")
        return 0

    path.parent.mkdir(parents=True, exist_ok=True)
    headers = list(rows[0].keys())

    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=headers, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)

    stats.add_log(f"📀 Exported {len(rows)} lines to \"{path}\"")
    return len(rows)
