"""Worker fork orchestrator: batches, child processes, merged stats."""

from .child import ChildRuntime, child_main, current_stats, resolve_entry_point, send_custom
from .channel import DispatchContext, WorkerChannel
from .errors import (
    BatchProcessingError,
    ChannelFault,
    ForkJobError,
    MergeTypeConflict,
    ProtocolViolation,
)
from .offset import SharedOffset
from .orchestrator import ForkOrchestrator, run_batch
from .stats import StatsAggregator, merge_result
from .types import (
    ChannelState,
    ChildCode,
    ForkOptions,
    IterationHook,
    LogEntry,
    ParentCode,
    make_message,
)

__all__ = [
    # Orchestration
    "ForkOrchestrator",
    "run_batch",
    "WorkerChannel",
    "DispatchContext",
    "SharedOffset",

    # Child side
    "ChildRuntime",
    "child_main",
    "current_stats",
    "send_custom",
    "resolve_entry_point",

    # Aggregation
    "StatsAggregator",
    "merge_result",

    # Types
    "ChannelState",
    "ChildCode",
    "ParentCode",
    "ForkOptions",
    "IterationHook",
    "LogEntry",
    "make_message",

    # Errors
    "ForkJobError",
    "BatchProcessingError",
    "ChannelFault",
    "MergeTypeConflict",
    "ProtocolViolation",
]
