# job/job.py
"""Job lifecycle: status, stats, report, telemetry and forked children."""
from __future__ import annotations

import logging
import sys
import threading
import traceback
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from setproctitle import setproctitle

from forkjob.fork.orchestrator import ForkOrchestrator
from forkjob.fork.stats import StatsAggregator
from forkjob.fork.types import EntryPoint, LogEntry
from forkjob.utilities.display import style
from forkjob.utilities.logger import setup_logger

from .args import ArgSpec, ArgsError, format_usage, parse_args
from .config import JobConfig
from .export import export_csv
from .report import format_report, log_report, print_report
from .signals import install_exit_handlers, restore_handlers
from .telemetry import TelemetryClient

__all__ = ["Job", "JobStatus"]

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    WARNING = "warning"
    CRASH = "crash"
    EXIT = "exit"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Job:
    """
    Wraps a script run between connect/disconnect hooks and reporting.

    Typical use::

        job = Job(__file__)
        args = job.get_args([ArgSpec("startDate"), ArgSpec("--confirm", optional=True)])
        job.start(lambda: job.fork_children(items, "mypkg.work:process", batch_size=50))
    """

    confirm_message = "Type --confirm to perform more."

    def __init__(
        self,
        script_path: str | Path,
        *,
        maintainer: Optional[str] = None,
        description: Optional[str] = None,
        confirm_message: Optional[str] = None,
        disable_report: bool = False,
        disable_connect: bool = False,
        tags: Optional[Sequence[str]] = None,
        thread: Optional[str] = None,
        on_end: Optional[Callable[..., Any]] = None,
        config: Optional[JobConfig] = None,
        telemetry: Optional[TelemetryClient] = None,
        log_dir: Optional[str | Path] = None,
    ):
        self.script_path = str(script_path)
        self.script_name = Path(script_path).stem
        self.maintainer = maintainer
        self.description = description
        if confirm_message:
            self.confirm_message = confirm_message
        self.disable_report = disable_report
        self.disable_connect = disable_connect
        self.tags: List[str] = list(tags or [])
        self.thread = thread
        self.on_end = on_end
        self.log_dir = log_dir
        self.log_path: Optional[Path] = None

        self.config = config or JobConfig.from_env()
        self.env = self.config.env
        if telemetry is None and self.config.simplelogs_token:
            telemetry = TelemetryClient(
                self.config.simplelogs_url,
                self.config.simplelogs_token,
                interval_s=self.config.telemetry_interval_s,
                timeout=self.config.telemetry_timeout_s,
            )
        self.telemetry = telemetry

        self.status = JobStatus.PENDING
        self.stats = StatsAggregator()
        self.args: Dict[str, Any] = {}
        self.arg_specs: List[ArgSpec] = []
        self.children_count = 0
        self.started_at: Optional[datetime] = None
        self.ended_at: Optional[datetime] = None

    # ------------------------------------------------------------ stats

    @property
    def result(self) -> Dict[str, Any]:
        return self.stats.result

    @property
    def logs(self) -> List[LogEntry]:
        return self.stats.logs

    def add_result(self, key: str, value: Any = 1) -> None:
        """Add a result or update its count."""
        self.stats.add_result(key, value)

    def add_error(self, message: str, data: Any = None) -> LogEntry:
        entry = self.stats.add_error(message, data)
        print(style(f"[{self._clock()}] {message}", "red"), file=sys.stderr)
        return entry

    error = add_error

    def add_log(self, message: str, data: Any = None) -> LogEntry:
        entry = self.stats.add_log(message, data)
        print(f"[{self._clock()}] {message}")
        return entry

    def get_errors(self) -> List[LogEntry]:
        return self.stats.errors()

    def export_csv(self, path: str | Path, rows: Sequence[Mapping[str, Any]]) -> int:
        return export_csv(path, rows, self.stats)

    # ------------------------------------------------------------ args

    def get_args(
        self, specs: Sequence[ArgSpec], argv: Optional[Sequence[str]] = None
    ) -> Dict[str, Any]:
        """Parse and validate command-line args; print usage and exit on error."""
        self.arg_specs = list(specs)
        try:
            parsed = parse_args(self.arg_specs, sys.argv[1:] if argv is None else argv)
        except ArgsError as exc:
            print(str(exc), file=sys.stderr)
            self.print_usage()
        self.args.update(parsed)
        return self.args

    def print_usage(self, exit: bool = True) -> None:
        print(format_usage(self.script_name, self.arg_specs))
        if exit:
            sys.exit(1)

    @property
    def needs_confirm(self) -> bool:
        """True when ``--confirm`` is declared but was not given."""
        declared = any(spec.dest == "confirm" for spec in self.arg_specs)
        return declared and not self.args.get("confirm")

    # ------------------------------------------------------------ report

    @property
    def duration_s(self) -> float:
        if self.started_at is None:
            return 0.0
        end = self.ended_at or _utcnow()
        return (end - self.started_at).total_seconds()

    @property
    def report(self) -> str:
        return format_report(self, color=False)

    @property
    def colored_report(self) -> str:
        return format_report(self, color=True)

    def print_progression(self, processed: int = 0, total: int = 0, prefix: str = "") -> None:
        percentage = (processed / total * 100) if total else 0.0
        label = f"[{prefix}]" if prefix else ""
        print(f"{label}[{percentage:.2f}%] {processed} / {total} in {self.duration_s:.0f}s")

    # ------------------------------------------------------------ lifecycle

    def connect(self) -> None:
        """Open external resources; override in subclasses."""

    def disconnect(self) -> None:
        """Release external resources; override in subclasses."""

    def start(self, process_job: Callable[[], Any]) -> JobStatus:
        """
        Run ``process_job`` and report.

        Status ends as SUCCESS, or WARNING when errors were recorded. Any
        exception marks the job CRASH, reports, and exits with code 1.
        """
        setproctitle(f"forkjob:{self.script_name}")
        if self.log_dir is not None:
            self.log_path = setup_logger(self.log_dir, filename_prefix=self.script_name)
        self.started_at = _utcnow()

        # signal.signal only works from the main thread
        previous_handlers = (
            install_exit_handlers(self)
            if threading.current_thread() is threading.main_thread()
            else {}
        )
        try:
            if not self.disable_connect:
                self.connect()
            if self.telemetry is not None:
                self.telemetry.start(self)

            self.status = JobStatus.RUNNING
            process_job()

            self.ended_at = _utcnow()
            self.status = JobStatus.WARNING if self.get_errors() else JobStatus.SUCCESS

            if not self.disable_report:
                print_report(self)
            log_report(self)
            if not self.disable_connect:
                self.disconnect()
            if self.telemetry is not None:
                self.telemetry.update(self, last=True)
            if self.on_end is not None:
                self.on_end(self.status)
        except Exception as exc:
            logger.exception("Job %s crashed", self.script_name)
            self.stats.add_error(f"Job crashed: {type(exc).__name__}: {exc}", traceback.format_exc())
            self.ended_at = _utcnow()
            self.status = JobStatus.CRASH
            if self.telemetry is not None:
                self.telemetry.update(self, last=True)
            if not self.disable_connect:
                self.disconnect()
            if not self.disable_report:
                print_report(self, file=sys.stderr)
            log_report(self)
            if self.on_end is not None:
                self.on_end(self.status, exc)
            sys.exit(1)
        finally:
            restore_handlers(previous_handlers)
        return self.status

    def unhandled_exit(self, reason: str, status: JobStatus = JobStatus.EXIT) -> None:
        """Called on crash or manual interruption: report anyway, exit 1."""
        if reason:
            self.add_error(reason)
        self.status = status
        self.ended_at = _utcnow()
        if self.telemetry is not None:
            self.telemetry.update(self, last=True)
        print_report(self, file=sys.stderr)
        log_report(self)
        sys.exit(1)

    # ------------------------------------------------------------ children

    def fork_children(
        self,
        items: Iterable[Any],
        child_entry: EntryPoint,
        **kwargs: Any,
    ) -> StatsAggregator:
        """
        Process ``items`` in forked children, merging into this job's stats.

        Keyword arguments are those of ForkOrchestrator.
        """
        orchestrator = ForkOrchestrator(child_entry, stats=self.stats, **kwargs)
        try:
            return orchestrator.run(items)
        finally:
            self.children_count += orchestrator.children_count

    def _clock(self) -> str:
        return datetime.now().strftime(self.config.time_format)
