"""Periodic safety-net jobs: hourly rollover check, weekly retention sweep.

The primary rollover trigger is the lazy check inside every store
operation; the hourly job only closes the gap during idle periods, so
staleness is bounded by the check interval.
"""

from __future__ import annotations

from typing import Any

from ..core.rollover import RolloverEngine
from ..core.scheduler import Scheduler, create_scheduler
from ..observability.loguru_config import get_logger
from .retention import RetentionSweeper

__all__ = [
    "DEFAULT_ROLLOVER_INTERVAL",
    "DEFAULT_SWEEP_INTERVAL",
    "MaintenanceScheduler",
    "ROLLOVER_JOB_ID",
    "SWEEP_JOB_ID",
]

DEFAULT_ROLLOVER_INTERVAL = 60 * 60
DEFAULT_SWEEP_INTERVAL = 7 * 24 * 60 * 60

ROLLOVER_JOB_ID = "rollover-check"
SWEEP_JOB_ID = "retention-sweep"

logger = get_logger("scheduler")


class MaintenanceScheduler:
    """Wires the rollover check and retention sweep onto a :class:`Scheduler`."""

    def __init__(
        self,
        rollover: RolloverEngine,
        sweeper: RetentionSweeper,
        *,
        rollover_interval: float = DEFAULT_ROLLOVER_INTERVAL,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.rollover = rollover
        self.sweeper = sweeper
        self.rollover_interval = rollover_interval
        self.sweep_interval = sweep_interval
        self.scheduler = scheduler or create_scheduler()
        self._registered = False

    def register(self) -> None:
        """Register both jobs (idempotent)."""
        if self._registered:
            return

        self.scheduler.schedule_interval(
            "Daily rollover check",
            self.rollover_interval,
            self.check_rollover,
            job_id=ROLLOVER_JOB_ID,
            run_immediately=True,
        )
        self.scheduler.schedule_interval(
            "Archive retention sweep",
            self.sweep_interval,
            self.sweep,
            job_id=SWEEP_JOB_ID,
        )
        self._registered = True

    def check_rollover(self) -> None:
        if self.rollover.ensure_current():
            logger.info("Scheduled check performed a rollover")

    def sweep(self) -> None:
        stats = self.sweeper.prune()
        logger.info(f"Weekly archive cleanup completed: {stats.removed_count} removed")

    def start(self) -> None:
        if self.scheduler.is_running():
            logger.info("Maintenance scheduler is already running")
            return

        self.register()
        self.scheduler.start()

    def stop(self) -> None:
        self.scheduler.stop()

    def get_status(self) -> dict[str, Any]:
        """Report whether the scheduler runs and the state of each job."""
        return {
            "is_running": self.scheduler.is_running(),
            "rollover_interval_seconds": self.rollover_interval,
            "sweep_interval_seconds": self.sweep_interval,
            "jobs": [job.to_dict() for job in self.scheduler.list_jobs()],
        }

    def __enter__(self) -> MaintenanceScheduler:
        self.start()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.stop()
