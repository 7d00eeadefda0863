# fork/child.py
"""Runtime executed inside each forked worker process."""

from __future__ import annotations

import importlib
import logging
import os
import pickle
import signal
import sys
import traceback
from multiprocessing.connection import Connection
from typing import Any, Callable, Optional, Sequence

from setproctitle import setproctitle

from .errors import ProtocolViolation
from .stats import StatsAggregator
from .types import ChildCode, EntryPoint, ParentCode, make_message

__all__ = [
    "ChildRuntime",
    "child_main",
    "current_stats",
    "send_custom",
    "resolve_entry_point",
]

logger = logging.getLogger(__name__)

_current: Optional["ChildRuntime"] = None


def current_stats() -> StatsAggregator:
    """Stats collector of the batch being processed in this child."""
    if _current is None:
        raise RuntimeError("current_stats() is only available inside a forked child")
    return _current.stats


def send_custom(**payload: Any) -> None:
    """Send a ``custom`` message to the orchestrator from inside a batch."""
    if _current is None:
        raise RuntimeError("send_custom() is only available inside a forked child")
    _current.send(ChildCode.CUSTOM, **payload)


def resolve_entry_point(entry: EntryPoint) -> Callable[..., Any]:
    """Return ``entry`` itself, or import it from ``"package.module:attr"``."""
    if callable(entry):
        return entry
    module_name, sep, attr_path = str(entry).partition(":")
    if not sep or not module_name or not attr_path:
        raise ValueError(f"Entry point must look like 'package.module:function', got {entry!r}")
    target: Any = importlib.import_module(module_name)
    for attr in attr_path.split("."):
        target = getattr(target, attr)
    if not callable(target):
        raise TypeError(f"Entry point {entry!r} is not callable")
    return target


class ChildRuntime:
    """
    Message loop of one worker.

    Announces READY, stores the first INIT payload, runs the batch function
    on every non-empty PROCESS and replies DONE or ERROR with the stats
    collected since the previous reply. An empty PROCESS or an EXIT ends the
    loop.
    """

    def __init__(
        self,
        conn: Connection,
        process_batch: Callable[[Any, list], Any],
        *,
        teardown: Optional[Callable[[], Any]] = None,
        worker_id: int = 0,
    ):
        self.conn = conn
        self.process_batch = process_batch
        self.teardown = teardown
        self.worker_id = worker_id
        self.init_data: Any = {}
        self.stats = StatsAggregator()
        self.batches_done = 0
        self.batches_failed = 0
        self._initialized = False

    def send(self, code: ChildCode, **payload: Any) -> None:
        self.conn.send(make_message(code, **payload))

    def run(self) -> None:
        global _current
        _current = self
        try:
            self.send(ChildCode.READY)
            while True:
                try:
                    message = self.conn.recv()
                except EOFError:
                    logger.warning("Worker %s: parent closed the pipe", self.worker_id)
                    break
                if not self._handle(message):
                    break
        finally:
            _current = None
            self._shutdown()

    def _handle(self, message: dict) -> bool:
        """Handle one parent message; return False to stop the loop."""
        try:
            code = ParentCode(message.get("code"))
        except ValueError:
            logger.warning("Worker %s: ignoring unknown message %r", self.worker_id, message)
            return True

        if code is ParentCode.INIT:
            if self._initialized:
                logger.warning(
                    "Worker %s: %s", self.worker_id,
                    ProtocolViolation("duplicate init ignored"),
                )
            else:
                self.init_data = message.get("initData") or {}
                self._initialized = True
            return True

        if code is ParentCode.EXIT:
            logger.info("Worker %s: exit requested", self.worker_id)
            return False

        items = message.get("itemsToProcess") or []
        if not items:
            self.send(ChildCode.FINISHED)
            logger.info(
                "Worker %s: finished (%d batches done, %d failed)",
                self.worker_id, self.batches_done, self.batches_failed,
            )
            return False

        if not self._initialized:
            logger.warning(
                "Worker %s: %s", self.worker_id,
                ProtocolViolation("process before init; using empty init data"),
            )
        self._process(items)
        return True

    def _process(self, items: Sequence[Any]) -> None:
        try:
            data = self.process_batch(self.init_data, list(items))
        except Exception as exc:
            self._fail_batch(items, f"{type(exc).__name__}: {exc}")
        else:
            try:
                self.send(ChildCode.DONE, data=data, **self.stats.snapshot())
            except (pickle.PicklingError, TypeError, AttributeError) as exc:
                # Connection.send pickles before writing, so nothing reached the pipe
                self._fail_batch(
                    items, f"batch result cannot be sent: {type(exc).__name__}: {exc}"
                )
            else:
                self.batches_done += 1
        finally:
            self.stats.reset()

    def _fail_batch(self, items: Sequence[Any], description: str) -> None:
        """Record the active exception and reply ERROR; the worker keeps serving."""
        self.batches_failed += 1
        self.stats.add_error(
            f"Worker {self.worker_id}: batch of {len(items)} items failed: {description}",
            traceback.format_exc(),
        )
        self.send(ChildCode.ERROR, error=description, **self.stats.snapshot())

    def _shutdown(self) -> None:
        try:
            if self.teardown is not None:
                self.teardown()
        finally:
            self.conn.close()


def child_main(
    conn: Connection,
    entry_point: EntryPoint,
    worker_id: int,
    argv: Sequence[str] = (),
    detached: bool = True,
    teardown: Optional[EntryPoint] = None,
) -> None:
    """``multiprocessing`` target for a forked worker."""
    setproctitle(f"forkjob:child[{worker_id:03d}]")

    # Exit handlers inherited from a forking parent report the parent's job
    signal.signal(signal.SIGINT, signal.default_int_handler)
    for name in ("SIGTERM", "SIGQUIT"):
        signum = getattr(signal, name, None)
        if signum is not None:
            signal.signal(signum, signal.SIG_DFL)

    if detached and hasattr(os, "setsid"):
        try:
            os.setsid()
        except OSError:
            # Already a process group leader
            pass

    sys.argv = [sys.argv[0] if sys.argv else "forkjob-child", *argv]

    runtime = ChildRuntime(
        conn,
        resolve_entry_point(entry_point),
        teardown=resolve_entry_point(teardown) if teardown is not None else None,
        worker_id=worker_id,
    )
    runtime.run()
