# fork/offset.py
"""Shared cursor over the work-item sequence."""

from __future__ import annotations

from typing import Any, List, Sequence

__all__ = ["SharedOffset"]


class SharedOffset:
    """
    Single cursor shared by every channel of one orchestrator run.

    ``claim`` reads and advances the cursor in one call; nothing between the
    slice and the increment can yield, so two channels never receive
    overlapping batches.
    """

    def __init__(self, items: Sequence[Any]):
        self._items = items
        self.position = 0
        self.claims = 0

    @property
    def total(self) -> int:
        return len(self._items)

    @property
    def exhausted(self) -> bool:
        return self.position >= len(self._items)

    def claim(self, batch_size: int) -> List[Any]:
        """Return the next batch (empty once the sequence is exhausted)."""
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        batch = list(self._items[self.position:self.position + batch_size])
        self.position += len(batch)
        if batch:
            self.claims += 1
        return batch
