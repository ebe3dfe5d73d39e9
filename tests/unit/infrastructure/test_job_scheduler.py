"""Unit tests for JobScheduler."""

from __future__ import annotations

import asyncio

import pytest

from linksweep.domain.exceptions import JobNotFoundError
from linksweep.infrastructure.scheduling import FunctionJob, JobScheduler


class _SlowJob:
    """Counts invocations and the highest number of overlapping runs."""

    def __init__(self, duration: float = 0.0, *, fail: bool = False) -> None:
        self.duration = duration
        self.fail = fail
        self.calls = 0
        self.active = 0
        self.max_active = 0

    async def run(self) -> str:
        self.calls += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.duration)
            if self.fail:
                raise RuntimeError("boom")
            return f"run-{self.calls}"
        finally:
            self.active -= 1


class TestRegistration:
    def test_rejects_non_positive_interval(self) -> None:
        scheduler = JobScheduler()
        with pytest.raises(ValueError):
            scheduler.add_job("job", _SlowJob(), 0)

    def test_status_of_unknown_job_is_none(self) -> None:
        assert JobScheduler().get_job_status("missing") is None

    def test_status_before_start(self) -> None:
        scheduler = JobScheduler()
        scheduler.add_job("job", _SlowJob(), 60)

        status = scheduler.get_job_status("job")
        assert status is not None
        assert status.interval_seconds == 60
        assert status.running is False
        assert status.active is False
        assert status.last_run is None
        assert scheduler.is_running is False

    @pytest.mark.asyncio
    async def test_replacing_a_job_cancels_the_old_timer(self) -> None:
        first, second = _SlowJob(), _SlowJob()
        scheduler = JobScheduler()
        scheduler.add_job("job", first, 60)
        scheduler.start()
        await asyncio.sleep(0.01)

        scheduler.add_job("job", second, 120)
        status = scheduler.get_job_status("job")
        assert status is not None
        assert status.interval_seconds == 120
        assert status.active is False
        assert [s.name for s in scheduler.get_all_job_statuses()] == ["job"]
        await scheduler.aclose(timeout=1)

    @pytest.mark.asyncio
    async def test_replacement_waits_for_the_old_run(self) -> None:
        first, second = _SlowJob(duration=0.2), _SlowJob()
        scheduler = JobScheduler()
        scheduler.add_job("job", first, 60)
        scheduler.start()
        await asyncio.sleep(0.01)

        scheduler.add_job("job", second, 60)
        status = scheduler.get_job_status("job")
        assert status is not None
        assert status.running is True

        run = await scheduler.trigger("job")
        assert run.skipped is True
        assert second.calls == 0
        assert first.active + second.active == 1

        await asyncio.sleep(0.25)
        after = await scheduler.trigger("job")
        assert after.outcome == "completed"
        assert second.calls == 1
        await scheduler.aclose(timeout=1)

    @pytest.mark.asyncio
    async def test_remove_job_stops_future_runs(self) -> None:
        job = _SlowJob()
        scheduler = JobScheduler()
        scheduler.add_job("job", job, 0.02)
        scheduler.start()
        await asyncio.sleep(0.01)

        scheduler.remove_job("job")
        calls = job.calls
        await asyncio.sleep(0.06)

        assert job.calls == calls
        assert scheduler.get_job_status("job") is None
        scheduler.remove_job("job")  # unknown name is a no-op
        await scheduler.aclose(timeout=1)

    @pytest.mark.asyncio
    async def test_unknown_job_raises(self) -> None:
        scheduler = JobScheduler()
        with pytest.raises(JobNotFoundError):
            scheduler.start_job("missing")
        with pytest.raises(JobNotFoundError):
            await scheduler.trigger("missing")


class TestScheduling:
    @pytest.mark.asyncio
    async def test_start_runs_immediately(self) -> None:
        job = _SlowJob()
        scheduler = JobScheduler()
        scheduler.add_job("job", job, 60)

        scheduler.start()
        await asyncio.sleep(0.01)

        assert job.calls == 1
        status = scheduler.get_job_status("job")
        assert status is not None
        assert status.active is True
        assert status.last_run is not None
        assert status.next_run is not None
        assert status.next_run > status.last_run
        await scheduler.aclose(timeout=1)

    @pytest.mark.asyncio
    async def test_repeats_on_interval(self) -> None:
        job = _SlowJob()
        scheduler = JobScheduler()
        scheduler.add_job("job", job, 0.02)

        scheduler.start()
        await asyncio.sleep(0.11)
        await scheduler.aclose(timeout=1)

        assert job.calls >= 3

    @pytest.mark.asyncio
    async def test_slow_run_is_never_overlapped(self) -> None:
        job = _SlowJob(duration=0.1)
        scheduler = JobScheduler()
        scheduler.add_job("job", job, 0.02)

        scheduler.start()
        await asyncio.sleep(0.25)
        await scheduler.aclose(timeout=1)

        assert job.max_active == 1
        assert job.calls >= 2

    @pytest.mark.asyncio
    async def test_failing_run_does_not_stop_the_job(self) -> None:
        job = _SlowJob(fail=True)
        scheduler = JobScheduler()
        scheduler.add_job("job", job, 0.02)

        scheduler.start()
        await asyncio.sleep(0.08)

        status = scheduler.get_job_status("job")
        assert status is not None
        assert status.active is True
        assert job.calls >= 2
        await scheduler.aclose(timeout=1)

    @pytest.mark.asyncio
    async def test_start_twice_is_a_no_op(self) -> None:
        job = _SlowJob()
        scheduler = JobScheduler()
        scheduler.add_job("job", job, 60)

        scheduler.start()
        scheduler.start()
        await asyncio.sleep(0.01)

        assert job.calls == 1
        await scheduler.aclose(timeout=1)

    @pytest.mark.asyncio
    async def test_start_job_arms_only_that_job(self) -> None:
        a, b = _SlowJob(), _SlowJob()
        scheduler = JobScheduler()
        scheduler.add_job("a", a, 60)
        scheduler.add_job("b", b, 60)

        scheduler.start_job("a")
        await asyncio.sleep(0.01)

        assert (a.calls, b.calls) == (1, 0)
        await scheduler.aclose(timeout=1)


class TestStop:
    @pytest.mark.asyncio
    async def test_stop_cancels_timers_but_lets_run_finish(self) -> None:
        job = _SlowJob(duration=0.05)
        scheduler = JobScheduler()
        scheduler.add_job("job", job, 60)
        scheduler.start()
        await asyncio.sleep(0.01)

        scheduler.stop()
        status = scheduler.get_job_status("job")
        assert status is not None
        assert status.active is False
        assert status.running is True
        assert scheduler.is_running is False

        await asyncio.sleep(0.1)
        assert job.active == 0
        assert job.calls == 1

    def test_stop_when_not_running_is_a_no_op(self) -> None:
        JobScheduler().stop()

    @pytest.mark.asyncio
    async def test_aclose_cancels_runs_past_the_timeout(self) -> None:
        job = _SlowJob(duration=10)
        scheduler = JobScheduler()
        scheduler.add_job("job", job, 60)
        scheduler.start()
        await asyncio.sleep(0.01)

        await scheduler.aclose(timeout=0.05)

        status = scheduler.get_job_status("job")
        assert status is not None
        assert status.running is False
        assert job.active == 0


class TestTrigger:
    @pytest.mark.asyncio
    async def test_returns_completed_run_with_result(self) -> None:
        scheduler = JobScheduler()
        scheduler.add_job("job", FunctionJob(_answer), 60)

        run = await scheduler.trigger("job")

        assert run.outcome == "completed"
        assert run.result == 42
        assert run.started_at is not None
        assert run.finished_at is not None
        assert run.finished_at >= run.started_at

    @pytest.mark.asyncio
    async def test_is_skipped_while_a_run_is_in_flight(self) -> None:
        job = _SlowJob(duration=0.05)
        scheduler = JobScheduler()
        scheduler.add_job("job", job, 60)

        first = asyncio.create_task(scheduler.trigger("job"))
        await asyncio.sleep(0.01)
        second = await scheduler.trigger("job")

        assert second.skipped is True
        assert (await first).outcome == "completed"
        assert job.calls == 1
        assert job.max_active == 1

    @pytest.mark.asyncio
    async def test_failure_is_reported_and_flag_cleared(self) -> None:
        scheduler = JobScheduler()
        scheduler.add_job("job", _SlowJob(fail=True), 60)

        run = await scheduler.trigger("job")
        assert run.outcome == "failed"
        assert run.error == "boom"

        status = scheduler.get_job_status("job")
        assert status is not None
        assert status.running is False

        again = await scheduler.trigger("job")
        assert again.outcome == "failed"


async def _answer() -> int:
    return 42
