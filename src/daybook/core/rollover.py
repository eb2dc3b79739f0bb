"""Day-boundary rollover of the working bucket into the archive.

Rollover protocol (all steps under the bucket lock):
1. Write the stale bucket to the archive store. Nothing else happens
   unless this write is durably confirmed.
2. Advance the reset marker to the stale bucket's date.
3. Replace the working bucket with a fresh empty bucket.

A failure in step 1 leaves the stale bucket untouched; the next
``ensure_current()`` retries the whole rollover. A marker already at
the stale date means step 1 already happened, so a repeated attempt
only completes the swap and never archives twice.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from ..observability.loguru_config import get_logger, timing_context
from .errors import ArchiveExistsError, DaybookError, ValidationError
from .models import BucketState, DailyBucket
from .time import Clock, parse_day

if TYPE_CHECKING:
    from ..storage.archive import ArchiveStore
    from ..storage.working_set import WorkingSetStore

__all__ = [
    "RolloverEngine",
    "RolloverResult",
]

logger = get_logger("rollover")


@dataclass(frozen=True)
class RolloverResult:
    """Outcome of one completed rollover.

    Attributes
    ----------
    from_date : date
        Date of the bucket that was rolled over
    to_date : date
        Date of the fresh bucket
    archived : bool
        Whether an archive was written by this attempt
    entry_count : int
        Entries in the rolled-over bucket
    """

    from_date: date
    to_date: date
    archived: bool
    entry_count: int


class RolloverEngine:
    """Detects stale buckets and moves them into the archive.

    Example:
        >>> engine = working_set.rollover
        >>> engine.ensure_current()
        False
        >>> engine.force_reset("2024-01-02")
        RolloverResult(from_date=..., to_date=datetime.date(2024, 1, 2), ...)
    """

    def __init__(
        self,
        working_set: WorkingSetStore,
        archives: ArchiveStore,
        *,
        clock: Clock,
        archive_empty_days: bool = False,
    ) -> None:
        self.working_set = working_set
        self.archives = archives
        self.clock = clock
        self.archive_empty_days = archive_empty_days
        self.state = BucketState.ACTIVE
        self.last_result: RolloverResult | None = None

    def ensure_current(self) -> bool:
        """Roll the bucket over if its date is behind today.

        Returns
        -------
        bool
            True if a rollover happened during this call

        Raises
        ------
        StorageError
            If archiving fails; the stale bucket is left intact
        """
        _, rolled = self._ensure()
        return rolled

    def current_bucket(self) -> DailyBucket:
        """Return today's bucket, rolling over first if needed."""
        bucket, _ = self._ensure()
        return bucket

    def current_date(self) -> date:
        """Logical "today": the clock's date, or later after a forced reset."""
        return self.current_bucket().date

    def force_reset(self, as_of: str | date) -> RolloverResult | None:
        """Roll over unconditionally as of ``as_of``.

        Parameters
        ----------
        as_of
            Date of the fresh bucket (``YYYY-MM-DD`` or date)

        Returns
        -------
        RolloverResult or None
            None when the bucket is already dated ``as_of``

        Raises
        ------
        InvalidDateError
            If ``as_of`` is malformed
        ValidationError
            If ``as_of`` is before the current bucket's date
        """
        target = parse_day(as_of)

        with self.working_set.lock:
            bucket = self.working_set.load_bucket()
            if bucket is None:
                self._create(target, expected_version=0)
                return None

            if target < bucket.date:
                raise ValidationError(
                    f"Cannot reset to {target.isoformat()}: current bucket is dated {bucket.day}",
                    ["[date] must not be before the current bucket date"],
                )

            if target == bucket.date:
                logger.info(f"Reset skipped, bucket already dated {bucket.day}", day=bucket.day)
                return None

            logger.warning(f"Forced reset from {bucket.day} to {target.isoformat()}")
            _, result = self._rollover(bucket, target)
            return result

    def _ensure(self) -> tuple[DailyBucket, bool]:
        with self.working_set.lock:
            today = self.clock.today()
            bucket = self.working_set.load_bucket()

            if bucket is None:
                return self._create(today, expected_version=0), False

            # A forced reset may leave the bucket ahead of the clock.
            if bucket.date >= today:
                return bucket, False

            fresh, _ = self._rollover(bucket, today)
            return fresh, True

    def _create(self, day: date, *, expected_version: int) -> DailyBucket:
        bucket = DailyBucket.empty(day, self.clock.now())
        self.working_set.save_bucket(bucket, expected_version=expected_version)
        logger.info(f"Created bucket for {bucket.day}", day=bucket.day)
        return bucket

    def _rollover(self, stale: DailyBucket, as_of: date) -> tuple[DailyBucket, RolloverResult]:
        with timing_context("rollover", component="rollover", from_date=stale.day, to_date=as_of.isoformat()) as ctx:
            self._transition(stale, BucketState.ARCHIVING)
            marker = self.working_set.load_marker()
            archived = False

            try:
                if marker.covers(stale.date):
                    logger.warning(
                        f"Bucket {stale.day} already rolled over, completing swap",
                        last_rollover_date=marker.last_rollover_date.isoformat(),
                    )
                else:
                    archived = self._archive(stale)
                    self.working_set.advance_marker(marker.advance(stale.date))

                fresh = DailyBucket.empty(as_of, self.clock.now())
                self.working_set.save_bucket(fresh, expected_version=stale.version)
            except DaybookError as exc:
                self._transition(stale, BucketState.ACTIVE)
                logger.error(f"Rollover of {stale.day} failed, bucket left intact: {exc}")
                raise

            self._transition(stale, BucketState.ARCHIVED)
            ctx["archived"] = archived

        result = RolloverResult(
            from_date=stale.date,
            to_date=as_of,
            archived=archived,
            entry_count=len(stale.entries),
        )
        self.last_result = result
        logger.info(
            f"Rolled over {stale.day} -> {as_of.isoformat()}",
            archived=archived,
            entries=len(stale.entries),
        )
        # The fresh bucket is now the active one.
        self.state = BucketState.ACTIVE
        return fresh, result

    def _archive(self, stale: DailyBucket) -> bool:
        if not stale.entries and not self.archive_empty_days:
            logger.info(f"Bucket {stale.day} is empty, nothing to archive")
            return False

        try:
            self.archives.put(stale.date, stale, archived_at=self.clock.now())
        except ArchiveExistsError:
            # Left behind by an attempt interrupted before the marker advanced.
            logger.warning(f"Archive for {stale.day} already present, keeping it")
            return False
        return True

    def _transition(self, bucket: DailyBucket, state: BucketState) -> None:
        logger.debug(f"Bucket {bucket.day}: {self.state.value} -> {state.value}", day=bucket.day)
        self.state = state
