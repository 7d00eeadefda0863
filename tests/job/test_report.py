# tests/job/test_report.py
import logging
import sys

from forkjob import ArgSpec, Job, JobConfig, JobStatus
from forkjob.job import format_report, log_report, print_report


def _job(**config):
    return Job("/srv/jobs/rebuild_index.py", config=JobConfig(**config))


def test_plain_report_sections():
    job = _job(env="prod")
    job.status = JobStatus.SUCCESS
    job.children_count = 4
    job.args = {"day": "2024-02-01", "limit": None}
    job.stats.add_result("indexed", 12)

    report = format_report(job, color=False)
    lines = report.splitlines()

    assert "REPORT" in lines[0]
    assert "👷 Job >  rebuild_index " in report
    assert "📁 Path > /srv/jobs/rebuild_index.py" in report
    assert "💻 Env > prod" in report
    assert "🚦 Status >  success " in report
    assert "🤰 Children > 4" in report
    assert "\t- day:  2024-02-01 " in report
    assert "limit" not in report
    assert "\t- indexed:  12 " in report
    assert "Errors" not in report
    assert lines[-1] == "-" * 60
    assert "\033[" not in report


def test_errors_are_capped_and_sorted():
    job = _job(report_errors_limit=2)
    for message in ("zeta", "alpha", "mid"):
        job.stats.add_error(message)

    report = job.report
    assert "🚩 Errors >" in report
    body = report.split("🚩 Errors >")[1]
    assert body.index("alpha") < body.index("zeta")
    assert "mid" not in body
    assert "(...1 more errors)" in body


def test_optional_lines_are_omitted():
    report = _job().report
    assert "Env" not in report
    assert "Children" not in report
    assert "Args" not in report
    assert "Results" not in report


def test_confirm_warning_appended():
    job = _job()
    job.get_args([], [])
    assert "--confirm" not in job.report

    job.get_args([ArgSpec("--confirm", optional=True)], [])
    assert job.report.rstrip().endswith("/!\\ Type --confirm to perform more.")


def test_colored_report_has_ansi():
    assert "\033[" in _job().colored_report


def test_log_report(caplog):
    with caplog.at_level(logging.INFO, logger="forkjob.job.report"):
        log_report(_job())
    assert any("rebuild_index" in r.getMessage() for r in caplog.records)


def test_print_report_targets(capsys):
    job = _job()
    print_report(job, color=False)
    print_report(job, file=sys.stderr)

    out = capsys.readouterr()
    assert "📁 Path > /srv/jobs/rebuild_index.py" in out.out
    assert "\033[" not in out.out
    assert "\033[" in out.err
