"""In-process scheduler for named recurring jobs.

Each armed job owns one timer task. Every tick spawns a separate run task,
so a slow run never delays the timer. A job name with a run in flight is
busy: any tick or trigger for that name, including one for a job that
replaced it, is skipped rather than started concurrently.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from linksweep.domain.entities.job import JobRun, JobStatus
from linksweep.domain.exceptions import JobNotFoundError
from linksweep.domain.ports.job import JobPort

log = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FunctionJob:
    """Adapts a zero-argument coroutine function to :class:`JobPort`."""

    def __init__(self, func: Callable[[], Awaitable[Any]]) -> None:
        self._func = func

    async def run(self) -> Any:
        return await self._func()


@dataclass
class _ScheduledJob:
    name: str
    job: JobPort
    interval: float
    last_run: datetime | None = None
    next_run: datetime | None = None
    timer: asyncio.Task[None] | None = field(default=None, repr=False)

    @property
    def active(self) -> bool:
        return self.timer is not None and not self.timer.done()

    def snapshot(self, *, running: bool) -> JobStatus:
        return JobStatus(
            name=self.name,
            interval_seconds=self.interval,
            last_run=self.last_run,
            next_run=self.next_run,
            running=running,
            active=self.active,
        )


class JobScheduler:
    """Runs registered jobs on fixed intervals without self-overlap.

    Lifecycle is driven by the host (see ``interfaces/composition.py``):
    ``start()`` on startup, ``aclose()`` on shutdown. ``start()`` and
    ``start_job()`` need a running event loop.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, _ScheduledJob] = {}
        self._inflight: set[asyncio.Task[JobRun]] = set()
        # Names with a run in flight. Keyed by name so a replaced job still
        # blocks its successor until the old run ends.
        self._busy: set[str] = set()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_job(self, name: str, job: JobPort, interval: float) -> None:
        """Register *job* under *name*, replacing any existing definition.

        Nothing runs until :meth:`start` or :meth:`start_job`.
        """
        if interval <= 0:
            raise ValueError("interval must be > 0")
        if name in self._jobs:
            log.warning("job_replaced", job=name)
            self.remove_job(name)

        self._jobs[name] = _ScheduledJob(name=name, job=job, interval=interval)
        log.info("job_added", job=name, interval_seconds=interval)

    def remove_job(self, name: str) -> None:
        """Cancel the job's timer and forget it. No-op if unknown."""
        entry = self._jobs.pop(name, None)
        if entry is None:
            return
        self._cancel_timer(entry)
        log.info("job_removed", job=name)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Run every job now and arm its repeating timer."""
        if self._running:
            log.warning("scheduler_already_running")
            return

        self._running = True
        log.info("scheduler_starting", jobs=len(self._jobs))
        for entry in self._jobs.values():
            self._arm(entry)

    def start_job(self, name: str) -> None:
        """Run a single job now and arm its repeating timer."""
        self._arm(self._get(name))

    def stop(self) -> None:
        """Cancel all timers. Runs already in flight are left to finish."""
        if not self._running:
            log.warning("scheduler_not_running")
            return

        self._running = False
        log.info("scheduler_stopping", inflight=len(self._inflight))
        for entry in self._jobs.values():
            self._cancel_timer(entry)

    async def aclose(self, *, timeout: float = 10.0) -> None:
        """Stop timers, then wait up to *timeout* seconds for in-flight runs.

        Runs still going after the timeout are cancelled.
        """
        if self._running:
            self.stop()
        for entry in self._jobs.values():
            self._cancel_timer(entry)

        if not self._inflight:
            return

        pending = set(self._inflight)
        log.info("scheduler_draining", inflight=len(pending), timeout=timeout)
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            log.warning("scheduler_drain_timeout", cancelled=len(still_running))

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    async def trigger(self, name: str) -> JobRun:
        """Run *name* immediately through the same non-overlap gate as ticks."""
        entry = self._get(name)
        task = self._spawn_run(entry)
        return await asyncio.shield(task)

    async def _run_job(self, entry: _ScheduledJob) -> JobRun:
        if entry.name in self._busy:
            log.warning("job_skipped_already_running", job=entry.name)
            return JobRun(name=entry.name, outcome="skipped")

        self._busy.add(entry.name)
        started = _utcnow()
        entry.last_run = started
        entry.next_run = started + timedelta(seconds=entry.interval)
        log.info("job_run_started", job=entry.name, started_at=started.isoformat())

        try:
            result = await entry.job.run()
        except Exception as exc:
            log.error("job_run_failed", job=entry.name, error=str(exc), exc_info=True)
            return JobRun(
                name=entry.name,
                outcome="failed",
                error=str(exc) or exc.__class__.__name__,
                started_at=started,
                finished_at=_utcnow(),
            )
        finally:
            self._busy.discard(entry.name)

        finished = _utcnow()
        log.info(
            "job_run_completed",
            job=entry.name,
            duration_seconds=round((finished - started).total_seconds(), 3),
            result=result,
        )
        return JobRun(
            name=entry.name,
            outcome="completed",
            result=result,
            started_at=started,
            finished_at=finished,
        )

    def _spawn_run(self, entry: _ScheduledJob) -> asyncio.Task[JobRun]:
        task = asyncio.create_task(self._run_job(entry), name=f"job-run:{entry.name}")
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def _timer_loop(self, entry: _ScheduledJob) -> None:
        try:
            while True:
                await asyncio.sleep(entry.interval)
                self._spawn_run(entry)
        except asyncio.CancelledError:
            log.debug("job_timer_cancelled", job=entry.name)
            raise

    def _arm(self, entry: _ScheduledJob) -> None:
        self._cancel_timer(entry)
        self._spawn_run(entry)
        entry.timer = asyncio.create_task(
            self._timer_loop(entry), name=f"job-timer:{entry.name}"
        )
        entry.next_run = _utcnow() + timedelta(seconds=entry.interval)
        log.info("job_armed", job=entry.name, next_run=entry.next_run.isoformat())

    @staticmethod
    def _cancel_timer(entry: _ScheduledJob) -> None:
        if entry.timer is not None:
            entry.timer.cancel()
            entry.timer = None

    def _get(self, name: str) -> _ScheduledJob:
        entry = self._jobs.get(name)
        if entry is None:
            raise JobNotFoundError(name)
        return entry

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_job_status(self, name: str) -> JobStatus | None:
        entry = self._jobs.get(name)
        if entry is None:
            return None
        return entry.snapshot(running=name in self._busy)

    def get_all_job_statuses(self) -> list[JobStatus]:
        return [
            entry.snapshot(running=entry.name in self._busy)
            for entry in self._jobs.values()
        ]
