"""Interval job scheduler.

Runs registered callables on fixed intervals from a daemon thread.
Every failure is caught and logged per job; a failing job keeps its
schedule and never stops the loop.
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..observability.loguru_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

__all__ = [
    "Job",
    "JobStatus",
    "Scheduler",
    "create_scheduler",
]


class JobStatus(Enum):
    """Status of scheduled job."""

    PENDING = "pending"
    RUNNING = "running"
    CANCELLED = "cancelled"


@dataclass
class Job:
    """Scheduled job container."""

    job_id: str
    name: str
    interval_seconds: float
    callable: Callable[[], Any]
    status: JobStatus = JobStatus.PENDING
    created_at: float = field(default_factory=time.time)
    last_run_at: float | None = None
    next_run_at: float | None = None
    run_count: int = 0
    error_count: int = 0
    last_error: str | None = None

    def should_run_now(self, now: float | None = None) -> bool:
        """Check if job should run now."""
        if self.status != JobStatus.PENDING or self.next_run_at is None:
            return False

        return (time.time() if now is None else now) >= self.next_run_at

    def calculate_next_run(self, *, run_immediately: bool = False) -> float:
        """Calculate next run time.

        Returns
        -------
        float
            Unix timestamp for next run
        """
        if self.last_run_at is None:
            return self.created_at if run_immediately else self.created_at + self.interval_seconds
        return self.last_run_at + self.interval_seconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "name": self.name,
            "interval_seconds": self.interval_seconds,
            "status": self.status.value,
            "last_run_at": self.last_run_at,
            "next_run_at": self.next_run_at,
            "run_count": self.run_count,
            "error_count": self.error_count,
            "last_error": self.last_error,
        }


class Scheduler:
    """Job scheduler with interval triggers.

    Features:
    - Idempotent scheduling (duplicate job_ids replace the existing job)
    - Cancellation support
    - Per-job fault isolation

    Example:
        >>> scheduler = Scheduler()
        >>> job_id = scheduler.schedule_interval("rollover-check", 3600, engine.ensure_current)
        >>> scheduler.start()
        >>> # ... later ...
        >>> scheduler.stop()
    """

    def __init__(self, *, poll_interval: float = 1.0) -> None:
        """Initialize scheduler.

        Parameters
        ----------
        poll_interval
            Seconds between checks for due jobs
        """
        self._jobs: dict[str, Job] = {}
        self._logger = get_logger("scheduler")
        self._poll_interval = poll_interval
        self._running = False
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._stop_event = threading.Event()

    def schedule_interval(
        self,
        name: str,
        interval_seconds: float,
        callable: Callable[[], Any],
        *,
        job_id: str | None = None,
        run_immediately: bool = False,
    ) -> str:
        """Schedule job to run at regular intervals.

        Parameters
        ----------
        name
            Human-readable job name
        interval_seconds
            Interval between runs in seconds
        callable
            Function to call (no arguments)
        job_id
            Optional stable job ID (generated if not provided)
        run_immediately
            Run on the first tick instead of after one interval

        Returns
        -------
        str
            Job ID for managing the job
        """
        if interval_seconds <= 0:
            raise ValueError(f"Interval must be positive, got: {interval_seconds}")

        job_id = job_id or str(uuid.uuid4())

        with self._lock:
            job = Job(job_id=job_id, name=name, interval_seconds=interval_seconds, callable=callable)
            job.next_run_at = job.calculate_next_run(run_immediately=run_immediately)
            self._jobs[job_id] = job

        self._logger.info(
            f"Job scheduled: {name} (every {interval_seconds}s)",
            job_id=job_id,
            next_run_at=job.next_run_at,
        )
        return job_id

    def cancel(self, job_id: str) -> bool:
        """Cancel scheduled job.

        Returns
        -------
        bool
            True if job was found and cancelled
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if not job:
                return False
            job.status = JobStatus.CANCELLED

        self._logger.info(f"Job cancelled: {job.name}", job_id=job_id)
        return True

    def get_job(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def list_jobs(self) -> list[Job]:
        with self._lock:
            return list(self._jobs.values())

    def start(self) -> None:
        """Start scheduler thread."""
        if self._running:
            self._logger.info("Scheduler is already running")
            return

        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="daybook-scheduler", daemon=True)
        self._thread.start()

        self._logger.info("Scheduler started")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop scheduler thread.

        Parameters
        ----------
        timeout
            Maximum time to wait for thread to stop
        """
        if not self._running:
            return

        self._running = False
        self._stop_event.set()

        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None

        self._logger.info("Scheduler stopped")

    def is_running(self) -> bool:
        return self._running

    def run_pending(self, now: float | None = None) -> int:
        """Run every due job once.

        Returns
        -------
        int
            Number of jobs executed
        """
        now = time.time() if now is None else now

        with self._lock:
            due = [job for job in self._jobs.values() if job.should_run_now(now)]

        for job in due:
            self._execute_job(job)

        return len(due)

    def _run_loop(self) -> None:
        while self._running:
            try:
                self.run_pending()
            except Exception as exc:
                self._logger.exception(f"Scheduler tick error: {exc}")

            self._stop_event.wait(timeout=self._poll_interval)

    def _execute_job(self, job: Job) -> None:
        job.status = JobStatus.RUNNING
        start_time = time.time()

        try:
            job.callable()
        except Exception as exc:
            job.error_count += 1
            job.last_error = str(exc)
            self._logger.exception(
                f"Job failed: {job.name}",
                job_id=job.job_id,
                error_count=job.error_count,
            )
        else:
            job.run_count += 1
            job.last_error = None
            self._logger.info(
                f"Job executed: {job.name}",
                job_id=job.job_id,
                duration_ms=(time.time() - start_time) * 1000,
                run_count=job.run_count,
            )
        finally:
            job.last_run_at = start_time
            job.next_run_at = job.calculate_next_run()
            if job.status == JobStatus.RUNNING:
                job.status = JobStatus.PENDING

    def __enter__(self) -> Scheduler:
        self.start()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.stop()


def create_scheduler(*, poll_interval: float = 1.0) -> Scheduler:
    """Factory function to create scheduler."""
    return Scheduler(poll_interval=poll_interval)
