"""Collaborator-facing facade over the day bucket stores.

Build one :class:`DaybookService` per deployment with
:func:`create_service` and pass it to whoever needs it; there is no
module-level store.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from .core.config import Settings
from .core.models import ArchiveView, BucketView, Entry, RetentionPolicy
from .core.retry import create_retry_policy
from .core.rollover import RolloverResult
from .core.time import Clock, SystemClock
from .maintenance.jobs import MaintenanceScheduler
from .maintenance.retention import PruneStats, RetentionSweeper
from .observability.loguru_config import get_logger
from .storage.archive import ArchiveStore
from .storage.working_set import WorkingSetStore

__all__ = [
    "DaybookService",
    "create_service",
]

logger = get_logger("service")


class DaybookService:
    """Entry point for adding entries, reading today and browsing archives.

    Example:
        >>> service = create_service(Settings(storage_path=Path("data")))
        >>> service.add_entry("user-1", {"name": "apple", "calories": 95})
        >>> service.get_today("user-1").totals
        {'calories': 95}
    """

    def __init__(
        self,
        working_set: WorkingSetStore,
        archives: ArchiveStore,
        sweeper: RetentionSweeper,
        maintenance: MaintenanceScheduler,
    ) -> None:
        self.working_set = working_set
        self.archives = archives
        self.sweeper = sweeper
        self.maintenance = maintenance

    @property
    def clock(self) -> Clock:
        return self.working_set.clock

    def add_entry(self, owner_id: str, payload: dict[str, Any]) -> Entry:
        """Append an entry to today's bucket for ``owner_id``.

        Parameters
        ----------
        owner_id
            Owner of the entry
        payload
            ``name``, numeric metrics (under ``metrics`` or top-level),
            optional ``media_ref`` and descriptive attributes

        Returns
        -------
        Entry
            The stored entry with its generated id

        Raises
        ------
        ValidationError
            If the payload is invalid; nothing is written
        """
        return self.working_set.add_entry(owner_id, payload)

    def remove_entry(self, owner_id: str, entry_id: str) -> None:
        self.working_set.remove_entry(owner_id, entry_id)

    def get_today(self, owner_id: str) -> BucketView:
        return self.working_set.get_bucket(owner_id)

    def get_archive(self, day: str | date, owner_id: str | None = None) -> ArchiveView:
        """Return a past day's archive, optionally filtered to one owner.

        Raises
        ------
        InvalidDateError
            If ``day`` is malformed
        ArchiveNotFoundError
            If no archive exists for ``day``, always for today or later
        """
        # Rolls over first so the previous day is readable right after midnight.
        today = self.working_set.rollover.current_date()
        return self.archives.get_archive(day, today=today).view(owner_id)

    def list_archive_dates(self) -> list[str]:
        """Archived dates as ``YYYY-MM-DD``, most recent first."""
        self.working_set.rollover.ensure_current()
        return [day.isoformat() for day in self.archives.list_available_dates()]

    def force_reset(self, as_of: str | date) -> RolloverResult | None:
        """Roll the current bucket over as of ``as_of`` (testing and operator use)."""
        return self.working_set.rollover.force_reset(as_of)

    def prune_archives(self, max_age_days: int | None = None) -> PruneStats:
        return self.sweeper.prune(max_age_days)

    def start_scheduler(self) -> None:
        self.maintenance.start()

    def stop_scheduler(self) -> None:
        self.maintenance.stop()

    def scheduler_status(self) -> dict[str, Any]:
        return self.maintenance.get_status()

    def close(self) -> None:
        self.stop_scheduler()

    def __enter__(self) -> DaybookService:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def create_service(settings: Settings, *, clock: Clock | None = None) -> DaybookService:
    """Wire stores, rollover, retention and scheduler from settings.

    Parameters
    ----------
    settings
        Typed deployment settings
    clock
        Calendar clock (default: system clock in ``settings.timezone``)

    Returns
    -------
    DaybookService
        Ready-to-use service; the scheduler is not started
    """
    clock = clock or SystemClock(settings.timezone)
    retry_policy = create_retry_policy(max_retries=settings.write_retries)
    root = settings.storage_path

    archives = ArchiveStore(root, retry_policy=retry_policy, fsync=settings.fsync)
    working_set = WorkingSetStore(
        root,
        archives=archives,
        clock=clock,
        lock_timeout=settings.lock_timeout,
        enable_file_locks=settings.enable_file_locks,
        retry_policy=retry_policy,
        archive_empty_days=settings.archive_empty_days,
        fsync=settings.fsync,
    )
    sweeper = RetentionSweeper(
        archives,
        clock=clock,
        policy=RetentionPolicy(max_age_days=settings.max_age_days),
        today=working_set.rollover.current_date,
    )
    maintenance = MaintenanceScheduler(
        working_set.rollover,
        sweeper,
        rollover_interval=settings.rollover_interval,
        sweep_interval=settings.sweep_interval,
    )

    logger.info(
        f"Daybook service ready at {root}",
        timezone=settings.timezone,
        max_age_days=settings.max_age_days,
    )
    return DaybookService(working_set, archives, sweeper, maintenance)
