"""Job wrapper: lifecycle, reporting, args, export, telemetry."""

from .args import ArgSpec, ArgsError, format_usage, parse_args
from .config import JobConfig
from .export import export_csv
from .job import Job, JobStatus
from .report import format_report, log_report, print_report
from .signals import install_exit_handlers, restore_handlers
from .telemetry import TelemetryClient

__all__ = [
    "Job",
    "JobStatus",
    "JobConfig",
    "ArgSpec",
    "ArgsError",
    "parse_args",
    "format_usage",
    "export_csv",
    "format_report",
    "print_report",
    "log_report",
    "install_exit_handlers",
    "restore_handlers",
    "TelemetryClient",
]
