# job/telemetry.py
"""Push job reports to a simplelogs HTTP server."""
from __future__ import annotations

import json
import logging
import threading
from typing import TYPE_CHECKING, Any, Dict, Optional, Set

import requests

if TYPE_CHECKING:
    from .job import Job

__all__ = ["TelemetryClient"]

logger = logging.getLogger(__name__)


class TelemetryClient:
    """
    Report a job's progress to ``{url}/report``.

    ``start`` creates the remote report, then a background thread PATCHes
    it every ``interval_s`` seconds with the logs not yet sent. HTTP
    failures are recorded as job errors and never interrupt the job.
    """

    def __init__(
        self,
        url: str,
        token: str,
        *,
        interval_s: float = 2.0,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url.rstrip("/")
        self.token = token
        self.interval_s = interval_s
        self.timeout = timeout
        self.session = session or requests.Session()
        self.report_id: Optional[str] = None
        self._sent_log_ids: Set[str] = set()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json", "Authorization": self.token}

    def start(self, job: "Job") -> None:
        logs = list(job.logs)
        payload = {
            "name": job.script_name,
            "path": job.script_path,
            "args": job.args,
            "tags": job.tags,
            "thread": job.thread,
            "env": job.env,
            "status": job.status.value,
            "startedAt": job.started_at.isoformat() if job.started_at else None,
            "logs": [entry.to_dict() for entry in logs],
        }
        try:
            resp = self.session.post(
                f"{self.url}/report",
                data=self._dumps(payload),
                headers=self.headers,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            self.report_id = resp.json()["_id"]
        except (requests.RequestException, ValueError, KeyError) as exc:
            job.add_error("Failed to send report (at start) to simplelogs api", str(exc))
            return

        self._sent_log_ids.update(entry.id for entry in logs)
        logger.info("Telemetry report %s created", self.report_id)

        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop, args=(job,), name="forkjob:telemetry", daemon=True
        )
        self._thread.start()

    def update(self, job: "Job", last: bool = False) -> None:
        if last:
            self._stop.set()
            if self._thread is not None and self._thread is not threading.current_thread():
                self._thread.join()
        if self.report_id is None:
            return

        with self._lock:
            to_send = [entry for entry in list(job.logs) if entry.id not in self._sent_log_ids]
            payload = {
                "logs": [entry.to_dict() for entry in to_send],
                "status": job.status.value,
                "endedAt": job.ended_at.isoformat() if job.ended_at else None,
                "result": job.result,
                "report": job.report,
                "args": job.args,
            }
            try:
                resp = self.session.patch(
                    f"{self.url}/report/{self.report_id}",
                    data=self._dumps(payload),
                    headers=self.headers,
                    timeout=self.timeout,
                )
                resp.raise_for_status()
            except requests.RequestException as exc:
                job.add_error("Failed to send report (at update) to simplelogs api", str(exc))
                return
            self._sent_log_ids.update(entry.id for entry in to_send)

    def _loop(self, job: "Job") -> None:
        while not self._stop.wait(self.interval_s):
            self.update(job)

    @staticmethod
    def _dumps(payload: Dict[str, Any]) -> str:
        return json.dumps(payload, default=str)
