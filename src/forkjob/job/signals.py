# job/signals.py
"""Print the job report even when the run is interrupted."""
from __future__ import annotations

import signal
from typing import TYPE_CHECKING, Any, Dict

if TYPE_CHECKING:
    from .job import Job

__all__ = ["EXIT_SIGNALS", "install_exit_handlers", "restore_handlers"]

EXIT_SIGNALS = {
    "SIGINT": "CTRL+C exit triggered",
    "SIGQUIT": "Keyboard quit triggered",
    "SIGTERM": "Kill command triggered",
}


def install_exit_handlers(job: "Job") -> Dict[int, Any]:
    """
    Route SIGINT, SIGQUIT and SIGTERM to ``job.unhandled_exit``.

    Must be called from the main thread. Returns the previous handlers so
    they can be restored with ``restore_handlers``.
    """
    previous: Dict[int, Any] = {}
    for name, reason in EXIT_SIGNALS.items():
        signum = getattr(signal, name, None)
        if signum is None:
            # SIGQUIT does not exist on Windows
            continue

        def _handler(_signum, _frame, reason=reason):
            job.unhandled_exit(reason)

        previous[signum] = signal.signal(signum, _handler)
    return previous


def restore_handlers(previous: Dict[int, Any]) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)
