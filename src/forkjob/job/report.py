# job/report.py
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from forkjob.utilities.display import (
    button,
    duration_badge,
    separator,
    status_badge,
    strip_ansi,
    style,
    value_badge,
)

if TYPE_CHECKING:
    from .job import Job

logger = logging.getLogger(__name__)


def format_report(job: "Job", *, color: bool = True) -> str:
    """
    Build the human-readable end-of-run report for ``job``.
    """
    status = job.status.value
    lines = [
        separator(title="Report"),
        f"👷 Job > {button('green', job.script_name, uppercase=False)}",
        f"📁 Path > {job.script_path}",
    ]
    if job.env:
        lines.append(f"💻 Env > {job.env}")
    lines.append(f"🚦 Status > {status_badge(status)}")
    lines.append(f"⏰ Duration > {duration_badge(job.duration_s)}")

    if job.children_count > 0:
        lines.append(f"🤰 Children > {job.children_count}")

    arg_items = [(k, v) for k, v in job.args.items() if v is not None]
    if arg_items:
        lines.append("💬 Args >")
        lines.extend(f"\t- {key}: {value_badge(value)}" for key, value in arg_items)

    if job.result:
        lines.append("📊 Results >")
        lines.extend(
            f"\t- {key}: {value_badge(value, 'blue')}" for key, value in job.result.items()
        )

    errors = job.get_errors()
    if errors:
        limit = job.config.report_errors_limit
        lines.append("🚩 Errors >")
        lines.extend(
            f"\t- {style(message, 'red')}"
            for message in sorted(entry.message for entry in errors[:limit])
        )
        if len(errors) > limit:
            lines.append(f"\t{style(f'(...{len(errors) - limit} more errors)', 'red')}")

    lines.append(separator())

    if job.needs_confirm:
        warning = style("/!\\", "bold", "red")
        lines.append(style(f"{warning} {style(job.confirm_message, 'yellow')}", "underline"))

    report = "\n".join(lines) + "\n"
    return report if color else strip_ansi(report)


def print_report(job: "Job", *, file=None, **kwargs) -> None:
    """Print the colored report to stdout, or to ``file``."""
    print(format_report(job, **kwargs), end="", file=file)


def log_report(job: "Job") -> None:
    """Log the uncolored report at INFO level (pipelines using logging)."""
    for line in format_report(job, color=False).rstrip("\n").splitlines():
        logger.info(line)
