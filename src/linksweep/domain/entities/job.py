"""Domain entities describing scheduled jobs and their runs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

JobOutcome = Literal["completed", "failed", "skipped"]


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class JobStatus:
    """Read-only snapshot of a registered job.

    ``last_run`` and ``next_run`` are advisory; ``active`` is True while a
    repeating timer is armed for the job.
    """

    name: str
    interval_seconds: float
    last_run: datetime | None
    next_run: datetime | None
    running: bool
    active: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "interval_seconds": self.interval_seconds,
            "last_run": _iso(self.last_run),
            "next_run": _iso(self.next_run),
            "running": self.running,
            "active": self.active,
        }


@dataclass(frozen=True)
class JobRun:
    """What happened when the scheduler tried to run a job once."""

    name: str
    outcome: JobOutcome
    result: Any = None
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def skipped(self) -> bool:
        return self.outcome == "skipped"
