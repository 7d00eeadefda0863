# forkjob/__init__.py
"""Batch jobs fanned out to forked worker processes."""

from .fork import (
    BatchProcessingError,
    ChannelFault,
    ForkJobError,
    ForkOptions,
    ForkOrchestrator,
    IterationHook,
    MergeTypeConflict,
    ProtocolViolation,
    StatsAggregator,
    current_stats,
    merge_result,
    run_batch,
    send_custom,
)
from .job import ArgSpec, Job, JobConfig, JobStatus

__all__ = [
    # Orchestration
    "ForkOrchestrator",
    "run_batch",
    "ForkOptions",
    "IterationHook",

    # Inside a child
    "current_stats",
    "send_custom",

    # Aggregation
    "StatsAggregator",
    "merge_result",

    # Job wrapper
    "Job",
    "JobStatus",
    "JobConfig",
    "ArgSpec",

    # Errors
    "ForkJobError",
    "BatchProcessingError",
    "ChannelFault",
    "MergeTypeConflict",
    "ProtocolViolation",
]
