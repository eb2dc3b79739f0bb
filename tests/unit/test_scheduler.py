"""Tests for the interval scheduler."""

from __future__ import annotations

import time

import pytest

from daybook.core.scheduler import Job, JobStatus, Scheduler, create_scheduler


class TestJob:
    def test_job_creation(self):
        """Test creating job."""
        job = Job(job_id="test-job", name="Test Job", interval_seconds=60, callable=lambda: None)

        assert job.status == JobStatus.PENDING
        assert job.run_count == 0
        assert job.should_run_now() is False

    def test_should_run_now(self):
        job = Job(job_id="test", name="Test", interval_seconds=60, callable=lambda: None)
        job.next_run_at = 100.0

        assert job.should_run_now(now=99.0) is False
        assert job.should_run_now(now=100.0) is True

    def test_cancelled_job_never_runs(self):
        job = Job(job_id="test", name="Test", interval_seconds=60, callable=lambda: None)
        job.next_run_at = 0.0
        job.status = JobStatus.CANCELLED

        assert job.should_run_now() is False

    def test_calculate_next_run(self):
        job = Job(job_id="test", name="Test", interval_seconds=60, callable=lambda: None, created_at=1000.0)

        assert job.calculate_next_run() == 1060.0
        assert job.calculate_next_run(run_immediately=True) == 1000.0

        job.last_run_at = 2000.0
        assert job.calculate_next_run() == 2060.0


class TestScheduler:
    def test_schedule_interval(self):
        scheduler = create_scheduler()
        job_id = scheduler.schedule_interval("Test", 60, lambda: None, job_id="fixed")

        assert job_id == "fixed"
        assert scheduler.get_job("fixed").interval_seconds == 60
        assert len(scheduler.list_jobs()) == 1

    def test_rescheduling_same_id_replaces_job(self):
        scheduler = Scheduler()
        scheduler.schedule_interval("First", 60, lambda: None, job_id="job")
        scheduler.schedule_interval("Second", 30, lambda: None, job_id="job")

        assert [job.name for job in scheduler.list_jobs()] == ["Second"]

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            Scheduler().schedule_interval("Bad", 0, lambda: None)

    def test_run_pending_executes_due_jobs(self):
        calls = []
        scheduler = Scheduler()
        scheduler.schedule_interval("Now", 60, lambda: calls.append("now"), run_immediately=True)
        scheduler.schedule_interval("Later", 60, lambda: calls.append("later"))

        assert scheduler.run_pending() == 1
        assert calls == ["now"]

    def test_job_rescheduled_after_run(self):
        scheduler = Scheduler()
        job_id = scheduler.schedule_interval("Now", 60, lambda: None, run_immediately=True)

        scheduler.run_pending()

        job = scheduler.get_job(job_id)
        assert job.run_count == 1
        assert job.status == JobStatus.PENDING
        assert job.next_run_at == pytest.approx(job.last_run_at + 60)

    def test_failing_job_does_not_stop_others(self):
        """A job that raises is logged and keeps its schedule."""
        calls = []

        def boom():
            raise RuntimeError("archive disk offline")

        scheduler = Scheduler()
        failing = scheduler.schedule_interval("Boom", 60, boom, run_immediately=True)
        scheduler.schedule_interval("Fine", 60, lambda: calls.append(1), run_immediately=True)

        assert scheduler.run_pending() == 2

        job = scheduler.get_job(failing)
        assert calls == [1]
        assert job.error_count == 1
        assert job.last_error == "archive disk offline"
        assert job.status == JobStatus.PENDING
        assert job.next_run_at is not None

    def test_cancel(self):
        calls = []
        scheduler = Scheduler()
        job_id = scheduler.schedule_interval("Now", 60, lambda: calls.append(1), run_immediately=True)

        assert scheduler.cancel(job_id) is True
        assert scheduler.cancel("missing") is False
        assert scheduler.run_pending() == 0
        assert calls == []

    @pytest.mark.slow
    def test_background_thread_runs_jobs(self):
        calls = []
        scheduler = Scheduler(poll_interval=0.01)
        scheduler.schedule_interval("Now", 3600, lambda: calls.append(1), run_immediately=True)

        with scheduler:
            assert scheduler.is_running()
            deadline = time.time() + 2
            while not calls and time.time() < deadline:
                time.sleep(0.01)

        assert calls == [1]
        assert not scheduler.is_running()
