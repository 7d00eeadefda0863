# fork/errors.py
"""Error taxonomy for forked batch processing."""

from __future__ import annotations

from typing import Any, Optional, Tuple

__all__ = [
    "ForkJobError",
    "BatchProcessingError",
    "ChannelFault",
    "MergeTypeConflict",
    "ProtocolViolation",
]


class ForkJobError(Exception):
    """Base class for all forkjob errors."""


class BatchProcessingError(ForkJobError):
    """The user function raised while processing one batch.

    Recovered inside the child; the parent only sees it through the
    ``error`` message, which ``from_message`` turns back into an exception.
    """

    def __init__(self, description: str, *, pid: Optional[int] = None):
        super().__init__(description)
        self.description = description
        self.pid = pid

    @classmethod
    def from_message(cls, message: dict, *, pid: Optional[int] = None) -> "BatchProcessingError":
        return cls(str(message.get("error") or "unknown batch error"), pid=pid)


class ChannelFault(ForkJobError):
    """A child process crashed, exited early, or broke its pipe."""

    def __init__(
        self,
        reason: str,
        *,
        worker_id: Optional[int] = None,
        pid: Optional[int] = None,
        exitcode: Optional[int] = None,
    ):
        detail = f"Worker {worker_id} (PID {pid}): {reason}"
        if exitcode is not None:
            detail += f" [exit code {exitcode}]"
        super().__init__(detail)
        self.reason = reason
        self.worker_id = worker_id
        self.pid = pid
        self.exitcode = exitcode


class MergeTypeConflict(ForkJobError):
    """Incompatible value kinds merged under the same result key."""

    def __init__(self, path: Tuple[str, ...], existing: Any, incoming: Any):
        self.path = path
        self.existing_type = type(existing).__name__
        self.incoming_type = type(incoming).__name__
        super().__init__(
            f"Result '{'.'.join(path)}' holds {self.existing_type}, "
            f"cannot merge {self.incoming_type}; overwritten"
        )


class ProtocolViolation(ForkJobError):
    """A message arrived out of sequence."""
