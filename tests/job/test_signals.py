# tests/job/test_signals.py
import signal

import pytest

from forkjob import Job, JobConfig, JobStatus
from forkjob.job import install_exit_handlers, restore_handlers


def test_sigterm_handler_reports_and_exits():
    job = Job("sig_job.py", config=JobConfig())
    before = signal.getsignal(signal.SIGTERM)
    previous = install_exit_handlers(job)
    try:
        handler = signal.getsignal(signal.SIGTERM)
        assert handler is not before
        with pytest.raises(SystemExit) as info:
            handler(signal.SIGTERM, None)
    finally:
        restore_handlers(previous)

    assert info.value.code == 1
    assert job.status is JobStatus.EXIT
    assert job.get_errors()[0].message == "Kill command triggered"
    assert signal.getsignal(signal.SIGTERM) == before


def test_installs_interrupt_handler():
    job = Job("sig_job.py", config=JobConfig())
    previous = install_exit_handlers(job)
    try:
        assert signal.SIGINT in previous
        with pytest.raises(SystemExit):
            signal.getsignal(signal.SIGINT)(signal.SIGINT, None)
    finally:
        restore_handlers(previous)

    assert job.get_errors()[0].message == "CTRL+C exit triggered"
