# fork/stats.py
"""Result and log aggregation for forked jobs."""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Optional, Tuple

from .errors import MergeTypeConflict
from .types import LogEntry

__all__ = ["StatsAggregator", "merge_result"]

logger = logging.getLogger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def merge_result(
    target: Dict[str, Any],
    incoming: Dict[str, Any],
    conflicts: Optional[List[MergeTypeConflict]] = None,
    _path: Tuple[str, ...] = (),
) -> Dict[str, Any]:
    """
    Merge ``incoming`` into ``target`` key by key and return ``target``.

    Rules
    -----
    - key absent from target: copied
    - both numeric: summed
    - both strings: last write wins
    - incoming list/tuple: appended to the target list (created if absent)
    - both dicts: merged recursively
    - anything else: overwritten, and a MergeTypeConflict is logged and
      appended to ``conflicts`` when given
    """
    for key, new in incoming.items():
        path = _path + (str(key),)

        if key not in target:
            target[key] = copy.deepcopy(list(new) if isinstance(new, tuple) else new)
            continue

        old = target[key]
        if _is_number(old) and _is_number(new):
            target[key] = old + new
        elif isinstance(old, str) and isinstance(new, str):
            target[key] = new
        elif isinstance(new, (list, tuple)) and isinstance(old, list):
            old.extend(copy.deepcopy(list(new)))
        elif isinstance(old, dict) and isinstance(new, dict):
            merge_result(old, new, conflicts, path)
        else:
            conflict = MergeTypeConflict(path, old, new)
            logger.warning("%s", conflict)
            if conflicts is not None:
                conflicts.append(conflict)
            target[key] = copy.deepcopy(new)

    return target


class StatsAggregator:
    """
    Accumulates a result aggregate and an ordered log collection.

    Used on both sides of the pipe: a child collects one batch worth of
    stats and ships a snapshot, the orchestrator absorbs every snapshot in
    arrival order.
    """

    def __init__(self) -> None:
        self.result: Dict[str, Any] = {}
        self.logs: List[LogEntry] = []

    def add_result(self, key: str, value: Any = 1) -> None:
        """Add a result or update its count."""
        self._merge({key: value})

    def add_error(self, message: str, data: Any = None) -> LogEntry:
        entry = LogEntry(message=message, type="error", data=data)
        logger.error("%s", message)
        self.logs.append(entry)
        return entry

    def add_log(self, message: str, data: Any = None) -> LogEntry:
        entry = LogEntry(message=message, type="log", data=data)
        logger.info("%s", message)
        self.logs.append(entry)
        return entry

    def errors(self) -> List[LogEntry]:
        return [entry for entry in self.logs if entry.is_error]

    def absorb(self, payload: Dict[str, Any]) -> None:
        """Merge a message's ``result`` and append its ``logs``."""
        result = payload.get("result")
        if result:
            self._merge(result)
        for entry in payload.get("logs") or ():
            if isinstance(entry, dict):
                entry = LogEntry(**entry)
            self.logs.append(entry)

    def snapshot(self) -> Dict[str, Any]:
        return {"result": copy.deepcopy(self.result), "logs": list(self.logs)}

    def reset(self) -> None:
        self.result = {}
        self.logs = []

    def _merge(self, incoming: Dict[str, Any]) -> None:
        conflicts: List[MergeTypeConflict] = []
        merge_result(self.result, incoming, conflicts)
        for conflict in conflicts:
            self.logs.append(
                LogEntry(message=str(conflict), type="error", data=conflict.path)
            )
