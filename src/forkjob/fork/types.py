# fork/types.py
"""Shared types for the fork orchestrator."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Literal, Optional, Sequence, Union

__all__ = [
    "ParentCode",
    "ChildCode",
    "ChannelState",
    "LogEntry",
    "ForkOptions",
    "IterationHook",
    "EntryPoint",
    "make_message",
]

EntryPoint = Union[str, Callable[[Any, list], Any]]
"""A picklable callable or a ``"package.module:function"`` string."""


class ParentCode(str, Enum):
    """Codes of messages sent from the orchestrator to a child."""

    INIT = "init"
    PROCESS = "process"
    EXIT = "exit"


class ChildCode(str, Enum):
    """Codes of messages sent from a child to the orchestrator."""

    READY = "ready"
    DONE = "done"
    ERROR = "error"
    FINISHED = "finished"
    CUSTOM = "custom"


class ChannelState(str, Enum):
    """Lifecycle of one worker channel."""

    SPAWNED = "spawned"
    AWAITING_READY = "awaiting_ready"
    IDLE = "idle"
    DISPATCHING = "dispatching"
    ERRORED = "errored"
    FINISHED = "finished"

    @property
    def terminal(self) -> bool:
        return self in (ChannelState.ERRORED, ChannelState.FINISHED)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class LogEntry:
    """A timestamped log or error record."""

    message: str
    type: Literal["error", "log"] = "log"
    data: Any = None
    date: str = field(default_factory=_now_iso)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def is_error(self) -> bool:
        return self.type == "error"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "type": self.type,
            "message": self.message,
            "data": self.data if self.data is None else str(self.data),
        }


@dataclass(frozen=True)
class ForkOptions:
    """Spawn configuration for worker children."""

    args: Sequence[str] = ()  # Extra argv handed to each child
    detached: bool = True  # Child starts its own session (POSIX)
    child_unref: bool = True  # Daemon child; not joined at interpreter exit
    children_number: Optional[int] = None  # If None, min(cpu_count, len(items))
    start_method: Literal["spawn", "fork", "forkserver"] = "spawn"
    teardown: Optional[EntryPoint] = None  # Runs in the child before it exits


@dataclass(frozen=True)
class IterationHook:
    """Callback run on every Nth idle notification from any child."""

    fn: Callable[[dict], Any]
    every_nth: int = 1


def make_message(code: Union[ParentCode, ChildCode], **payload: Any) -> dict:
    """Build a wire message: ``{"code": <value>, **payload}``."""
    return {"code": code.value, **payload}
