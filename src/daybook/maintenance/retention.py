"""Retention sweep for archived day buckets.

Archives dated strictly before ``today - max_age_days`` are deleted.
The sweep is best-effort: a failed delete is logged and counted, and
the remaining candidates are still processed. It only touches
immutable archives, so it runs outside the bucket lock.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Callable

from ..core.models import BucketState, RetentionPolicy
from ..core.time import Clock
from ..observability.loguru_config import get_logger, timing_context
from ..storage.archive import ArchiveStore

__all__ = [
    "PruneStats",
    "RetentionSweeper",
]

logger = get_logger("retention")


@dataclass
class PruneStats:
    """Statistics from a prune run.

    Attributes
    ----------
    cutoff : date
        Archives dated before this were candidates
    removed : list[date]
        Dates whose archives were deleted
    failed : list[date]
        Dates whose deletion failed
    """

    cutoff: date
    removed: list[date] = field(default_factory=list)
    failed: list[date] = field(default_factory=list)

    @property
    def removed_count(self) -> int:
        return len(self.removed)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    def to_dict(self) -> dict[str, object]:
        return {
            "cutoff": self.cutoff.isoformat(),
            "removed": [day.isoformat() for day in self.removed],
            "failed": [day.isoformat() for day in self.failed],
        }


class RetentionSweeper:
    """Deletes archives older than the retention window.

    ``today`` supplies the day the window is measured from; it defaults
    to the clock and is the rollover engine's logical day in a service.
    """

    def __init__(
        self,
        archives: ArchiveStore,
        *,
        clock: Clock,
        policy: RetentionPolicy | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        self.archives = archives
        self.clock = clock
        self.policy = policy or RetentionPolicy()
        self.today = today or clock.today

    def prune(self, max_age_days: int | None = None) -> PruneStats:
        """Delete archives dated strictly before ``today - max_age_days``.

        Parameters
        ----------
        max_age_days
            Override for the configured policy

        Returns
        -------
        PruneStats
            Removed and failed dates

        Raises
        ------
        ValidationError
            If ``max_age_days`` is negative
        """
        policy = self.policy if max_age_days is None else RetentionPolicy(max_age_days=max_age_days)
        stats = PruneStats(cutoff=policy.cutoff(self.today()))

        with timing_context("prune", component="retention", cutoff=stats.cutoff.isoformat()) as ctx:
            for day in sorted(self.archives.list_available_dates()):
                if day >= stats.cutoff:
                    break

                try:
                    removed = self.archives.delete(day)
                except OSError as exc:
                    stats.failed.append(day)
                    logger.error(f"Failed to prune archive {day.isoformat()}", day=day.isoformat(), error=str(exc))
                    continue

                if removed:
                    stats.removed.append(day)
                    logger.info(
                        f"Pruned archive {day.isoformat()}",
                        day=day.isoformat(),
                        state=BucketState.PRUNED.value,
                    )

            ctx["removed"] = stats.removed_count
            ctx["failed"] = stats.failed_count

        logger.info(
            f"Retention sweep done: {stats.removed_count} removed, {stats.failed_count} failed",
            cutoff=stats.cutoff.isoformat(),
            max_age_days=policy.max_age_days,
        )
        return stats
