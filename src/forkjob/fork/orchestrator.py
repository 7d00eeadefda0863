# fork/orchestrator.py
"""Split work items across forked worker processes."""

from __future__ import annotations

import logging
import multiprocessing as mp
import os
from multiprocessing.connection import wait
from typing import Any, Callable, Dict, Iterable, List, Optional

from tqdm import tqdm

from .channel import DispatchContext, WorkerChannel
from .errors import ChannelFault
from .offset import SharedOffset
from .stats import StatsAggregator
from .types import ChannelState, EntryPoint, ForkOptions, IterationHook

__all__ = ["ForkOrchestrator", "run_batch"]

logger = logging.getLogger(__name__)


class ForkOrchestrator:
    """
    Fan a list of work items out to N child processes.

    All channels of a run pull batches from one SharedOffset, so faster
    workers simply take more batches. ``run`` returns once every child has
    sent FINISHED and raises ChannelFault as soon as any child crashes.
    """

    def __init__(
        self,
        child_entry: EntryPoint,
        *,
        batch_size: int = 1,
        init_data: Any = None,
        fork_options: Optional[ForkOptions] = None,
        on_iteration: Optional[IterationHook] = None,
        on_finished: Optional[Callable[[dict], Any]] = None,
        on_error: Optional[Callable[[dict], Any]] = None,
        on_child_return: Optional[Callable[[Any, dict], Any]] = None,
        on_custom: Optional[Callable[[dict], Any]] = None,
        stats: Optional[StatsAggregator] = None,
        show_progress: bool = False,
    ):
        """
        Initialize the orchestrator.

        Args:
            child_entry: Batch function ``fn(init_data, batch)``, as a
                picklable callable or a ``"package.module:function"`` string
            batch_size: Maximum number of items per batch
            init_data: Value sent once to every child before its first batch
            fork_options: Spawn configuration
            on_iteration: Hook run on every Nth idle notification
            on_finished: Called once with the last FINISHED message
            on_error: Called with every ERROR message
            on_child_return: Called with ``(data, message)`` for every DONE
            on_custom: Called with every CUSTOM message, unchanged
            stats: Aggregator to merge into (a fresh one if None)
            show_progress: Draw a tqdm bar of acknowledged items
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        self.child_entry = child_entry
        self.batch_size = batch_size
        self.init_data = {} if init_data is None else init_data
        self.fork_options = fork_options or ForkOptions()
        self.on_iteration = on_iteration
        self.on_finished = on_finished
        self.on_error = on_error
        self.on_child_return = on_child_return
        self.on_custom = on_custom
        self.stats = stats if stats is not None else StatsAggregator()
        self.show_progress = show_progress

        self.channels: List[WorkerChannel] = []
        self.children: Dict[int, Any] = {}  # pid -> live Process
        self.children_count = 0

    def children_number(self, item_count: int) -> int:
        """Number of workers to spawn for ``item_count`` items."""
        explicit = self.fork_options.children_number
        if explicit is not None:
            if explicit < 1:
                raise ValueError(f"children_number must be >= 1, got {explicit}")
            return explicit
        return min(os.cpu_count() or 1, item_count)

    def run(self, items: Iterable[Any]) -> StatsAggregator:
        """
        Process every item in exactly one batch.

        Returns:
            The aggregator holding the merged results and logs

        Raises:
            ChannelFault: If any child crashes, exits non-zero, or exits
                before sending FINISHED
        """
        # Channels of the previous run are reaped; only this run's are watched
        self.channels = []
        items = list(items)
        if not items:
            logger.info("No items to process; no worker spawned")
            return self.stats

        num_children = self.children_number(len(items))
        ctx = mp.get_context(self.fork_options.start_method)
        progress = (
            tqdm(total=len(items), desc="Items processed", unit="items", colour="blue")
            if self.show_progress else None
        )
        dispatch = DispatchContext(
            offset=SharedOffset(items),
            stats=self.stats,
            batch_size=self.batch_size,
            init_data=self.init_data,
            on_iteration=self.on_iteration,
            on_error=self.on_error,
            on_child_return=self.on_child_return,
            on_custom=self.on_custom,
            progress=progress,
        )

        logger.info(
            "Forking %d children for %d items (batch size %d)",
            num_children, len(items), self.batch_size,
        )

        try:
            for worker_id in range(num_children):
                channel = WorkerChannel(
                    worker_id, ctx, self.child_entry, self.fork_options, dispatch
                )
                channel.start()
                self.channels.append(channel)
                self.children[channel.pid] = channel.process
                self.children_count += 1

            self._event_loop()
        except ChannelFault as exc:
            logger.error("Aborting run: %s", exc)
            self._abort()
            raise
        except BaseException:
            self._abort()
            raise
        finally:
            if progress is not None:
                progress.close()

        for channel in self.channels:
            channel.close()
        self.children.clear()
        return self.stats

    def _event_loop(self) -> None:
        active = set(self.channels)
        live = list(self.channels)

        while active:
            watched: Dict[Any, tuple] = {}
            for channel in live:
                if channel.conn is not None:
                    watched[channel.conn] = (channel, False)
                watched[channel.sentinel] = (channel, True)

            for ready in wait(list(watched)):
                channel, exited = watched[ready]
                if exited:
                    channel.on_exit()
                    live.remove(channel)
                    self.children.pop(channel.pid, None)
                else:
                    channel.on_readable()

                if channel.state is ChannelState.FINISHED and channel in active:
                    active.discard(channel)
                    if not active:
                        logger.info("All %d children finished", len(self.channels))
                        if self.on_finished is not None:
                            self.on_finished(channel.last_message)
                        return

    def _abort(self) -> None:
        """Stop every child still running after a fatal error."""
        for channel in self.channels:
            if channel.state is ChannelState.DISPATCHING:
                channel.kill()
            elif not channel.state.terminal:
                channel.request_exit()
        for channel in self.channels:
            channel.close()
        self.children.clear()


def run_batch(items: Iterable[Any], child_entry: EntryPoint, **kwargs: Any) -> StatsAggregator:
    """Functional shortcut for ``ForkOrchestrator(child_entry, **kwargs).run(items)``."""
    return ForkOrchestrator(child_entry, **kwargs).run(items)
