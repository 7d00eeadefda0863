# job/config.py
"""Configuration for job runs."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional


@dataclass(frozen=True)
class JobConfig:
    """Job-level settings, usually read from the environment."""

    # Environment label shown in reports and telemetry
    env: Optional[str] = None

    # Telemetry (disabled unless a token is set)
    simplelogs_url: str = "http://localhost:5101"
    simplelogs_token: Optional[str] = None
    telemetry_interval_s: float = 2.0
    telemetry_timeout_s: float = 10.0

    # Report
    report_errors_limit: int = 6
    time_format: str = "%H:%M:%S"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "JobConfig":
        """Build a config from ``FORKJOB_*`` environment variables."""
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            env=env.get("FORKJOB_ENV") or None,
            simplelogs_url=env.get("FORKJOB_SIMPLELOGS_URL", defaults.simplelogs_url),
            simplelogs_token=env.get("FORKJOB_SIMPLELOGS_TOKEN") or None,
            telemetry_interval_s=float(
                env.get("FORKJOB_TELEMETRY_INTERVAL_S", defaults.telemetry_interval_s)
            ),
        )
