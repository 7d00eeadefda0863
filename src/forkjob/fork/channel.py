# fork/channel.py
"""Parent-side handle to one forked worker process."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from multiprocessing.connection import Connection
from typing import Any, Callable, Dict, FrozenSet, List, Optional

from .child import child_main
from .errors import BatchProcessingError, ChannelFault, ProtocolViolation
from .offset import SharedOffset
from .stats import StatsAggregator
from .types import (
    ChannelState,
    ChildCode,
    EntryPoint,
    ForkOptions,
    IterationHook,
    ParentCode,
    make_message,
)

__all__ = ["DispatchContext", "WorkerChannel"]

logger = logging.getLogger(__name__)

_TRANSITIONS: Dict[ChannelState, FrozenSet[ChannelState]] = {
    ChannelState.SPAWNED: frozenset({ChannelState.AWAITING_READY, ChannelState.ERRORED}),
    ChannelState.AWAITING_READY: frozenset({ChannelState.IDLE, ChannelState.ERRORED}),
    ChannelState.IDLE: frozenset(
        {ChannelState.DISPATCHING, ChannelState.FINISHED, ChannelState.ERRORED}
    ),
    ChannelState.DISPATCHING: frozenset({ChannelState.IDLE, ChannelState.ERRORED}),
    ChannelState.ERRORED: frozenset(),
    ChannelState.FINISHED: frozenset(),
}


@dataclass
class DispatchContext:
    """Everything the channels of one run share."""

    offset: SharedOffset
    stats: StatsAggregator
    batch_size: int = 1
    init_data: Any = None
    on_iteration: Optional[IterationHook] = None
    on_error: Optional[Callable[[dict], Any]] = None
    on_child_return: Optional[Callable[[Any, dict], Any]] = None
    on_custom: Optional[Callable[[dict], Any]] = None
    progress: Any = None  # tqdm bar or None


class WorkerChannel:
    """
    Drives one child through the READY / INIT / PROCESS handshake.

    Every idle notification (READY, DONE, ERROR) merges the carried stats
    and immediately claims and sends the next batch, so a child never has
    more than one batch in flight. Completion is signaled by the child's
    FINISHED message only; a process exit observed before it is a fault.
    """

    def __init__(
        self,
        worker_id: int,
        ctx: Any,
        entry_point: EntryPoint,
        fork_options: ForkOptions,
        dispatch: DispatchContext,
    ):
        self.worker_id = worker_id
        self.ctx = ctx
        self.entry_point = entry_point
        self.fork_options = fork_options
        self.dispatch = dispatch
        self.state = ChannelState.SPAWNED
        self.process = None
        self.conn: Optional[Connection] = None
        self.in_flight: List[Any] = []
        self.batches_sent = 0
        self.last_message: Optional[dict] = None

    def __repr__(self) -> str:
        return f"<WorkerChannel {self.worker_id} pid={self.pid} state={self.state.value}>"

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process is not None else None

    @property
    def sentinel(self) -> Optional[int]:
        return self.process.sentinel if self.process is not None else None

    # ------------------------------------------------------------------ setup

    def start(self) -> None:
        """Spawn the child process and wait for its READY."""
        parent_conn, child_conn = self.ctx.Pipe(duplex=True)
        options = self.fork_options
        self.process = self.ctx.Process(
            target=child_main,
            args=(
                child_conn,
                self.entry_point,
                self.worker_id,
                tuple(options.args),
                options.detached,
                options.teardown,
            ),
            name=f"forkjob:worker-{self.worker_id}",
            daemon=options.child_unref,
        )
        self.process.start()
        child_conn.close()
        self.conn = parent_conn
        self._transition(ChannelState.AWAITING_READY)
        logger.debug("Worker %s: spawned PID %s", self.worker_id, self.pid)

    # -------------------------------------------------------------- messages

    def on_readable(self) -> None:
        """Read and handle one message from the child."""
        if self.conn is None:
            return
        try:
            message = self.conn.recv()
        except (EOFError, OSError):
            # Child side closed; the exit status is judged on the sentinel
            self._close_conn()
            return
        self.handle_message(message)

    def handle_message(self, message: dict) -> None:
        self.last_message = message
        if self.state.terminal:
            logger.warning(
                "Worker %s: %s", self.worker_id,
                ProtocolViolation(f"message {message.get('code')!r} after {self.state.value}"),
            )
            return

        try:
            code = ChildCode(message.get("code"))
        except ValueError:
            logger.warning("Worker %s: ignoring unknown message %r", self.worker_id, message)
            return

        if code is ChildCode.CUSTOM:
            if self.dispatch.on_custom is not None:
                self.dispatch.on_custom(message)
            return

        if code is ChildCode.FINISHED:
            self._transition(ChannelState.FINISHED)
            self._close_conn()
            logger.info(
                "Worker %s: finished after %d batches", self.worker_id, self.batches_sent
            )
            return

        if code is ChildCode.READY:
            self._send(ParentCode.INIT, initData=self.dispatch.init_data)
        self._on_idle(code, message)

    def _on_idle(self, code: ChildCode, message: dict) -> None:
        dispatch = self.dispatch

        if self.state is ChannelState.IDLE:
            logger.warning(
                "Worker %s: %s", self.worker_id,
                ProtocolViolation(f"{code.value} received with no batch in flight"),
            )
        else:
            self._transition(ChannelState.IDLE)

        dispatch.stats.absorb(message)
        if dispatch.progress is not None and self.in_flight:
            dispatch.progress.update(len(self.in_flight))
        self.in_flight = []

        if code is ChildCode.ERROR:
            logger.warning(
                "Worker %s: %s", self.worker_id,
                BatchProcessingError.from_message(message, pid=self.pid),
            )
            if dispatch.on_error is not None:
                dispatch.on_error(message)
        if code is ChildCode.DONE and dispatch.on_child_return is not None:
            dispatch.on_child_return(message.get("data"), message)

        hook = dispatch.on_iteration
        if hook is not None and dispatch.offset.position % max(hook.every_nth, 1) == 0:
            hook.fn(message)

        batch = dispatch.offset.claim(dispatch.batch_size)
        self._send(ParentCode.PROCESS, itemsToProcess=batch)
        if batch:
            self.in_flight = batch
            self.batches_sent += 1
            self._transition(ChannelState.DISPATCHING)

    # ------------------------------------------------------------- lifecycle

    def on_exit(self) -> None:
        """
        Judge the child's exit once its sentinel fires.

        Buffered messages are handled first so a FINISHED written just
        before exiting still counts. Raises ChannelFault for a non-zero exit
        or any exit before FINISHED.
        """
        while self.conn is not None and not self.state.terminal:
            try:
                if not self.conn.poll():
                    break
            except (EOFError, OSError):
                break
            self.on_readable()

        self.process.join()
        exitcode = self.process.exitcode
        self._close_conn()

        if exitcode != 0:
            self.fail("exited with non-zero status", exitcode)
        if self.state is not ChannelState.FINISHED:
            self.fail("exited before sending finished", exitcode)

    def fail(self, reason: str, exitcode: Optional[int] = None) -> None:
        """Mark the channel as errored and raise the fault."""
        self.state = ChannelState.ERRORED
        raise ChannelFault(reason, worker_id=self.worker_id, pid=self.pid, exitcode=exitcode)

    def request_exit(self) -> None:
        """Ask an idle child to terminate itself."""
        if self.conn is None:
            return
        try:
            self.conn.send(make_message(ParentCode.EXIT))
        except OSError:
            logger.debug("Worker %s: already gone, exit not delivered", self.worker_id)

    def kill(self) -> None:
        if self.process is not None and self.process.is_alive():
            self.process.terminate()

    def close(self, timeout: float = 5.0) -> None:
        """Reap the child; terminate it if it outlives ``timeout``."""
        if self.process is not None:
            self.process.join(timeout)
            if self.process.is_alive():
                self.process.terminate()
                self.process.join()
        self._close_conn()

    # --------------------------------------------------------------- helpers

    def _send(self, code: ParentCode, **payload: Any) -> None:
        if self.conn is None:
            self.fail(f"pipe closed before sending {code.value}")
        try:
            self.conn.send(make_message(code, **payload))
        except OSError as exc:
            self.fail(f"pipe broken while sending {code.value}: {exc}")

    def _transition(self, new_state: ChannelState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            logger.warning(
                "Worker %s: %s", self.worker_id,
                ProtocolViolation(f"transition {self.state.value} -> {new_state.value}"),
            )
        self.state = new_state

    def _close_conn(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None
