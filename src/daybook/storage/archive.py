"""Durable, date-keyed store of immutable past-day snapshots.

Layout: ``<root>/archive/bucket-YYYY-MM-DD.json``, one file per
archived day. Files are written once (create-only) and only ever
deleted by the retention sweeper.
"""

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path

from ..core.errors import ArchiveExistsError, ArchiveNotFoundError, StorageError
from ..core.models import Archive, DailyBucket
from ..core.retry import RetryPolicy, with_retry
from ..core.time import parse_day
from ..observability.loguru_config import get_logger
from .files import atomic_write_json, decode_record, read_json

__all__ = [
    "ARCHIVE_PREFIX",
    "ArchiveStore",
]

ARCHIVE_PREFIX = "bucket-"

logger = get_logger("storage")


class ArchiveStore:
    """Read-mostly storage of archived day buckets.

    Example:
        >>> store = ArchiveStore(Path("data"))
        >>> store.list_available_dates()
        [datetime.date(2024, 1, 2), datetime.date(2024, 1, 1)]
    """

    def __init__(
        self,
        root: Path,
        *,
        retry_policy: RetryPolicy | None = None,
        fsync: bool = True,
    ) -> None:
        self.archive_dir = root / "archive"
        self.retry_policy = retry_policy or RetryPolicy()
        self.fsync = fsync
        self.archive_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, day: date) -> Path:
        return self.archive_dir / f"{ARCHIVE_PREFIX}{day.isoformat()}.json"

    def exists(self, day: date) -> bool:
        return self.path_for(day).exists()

    def get_archive(self, day: str | date, *, today: date | None = None) -> Archive:
        """Load the archive for a past day.

        Parameters
        ----------
        day
            ``YYYY-MM-DD`` string or date
        today
            Current logical day; ``day`` on or after it is never archived

        Returns
        -------
        Archive
            The immutable snapshot

        Raises
        ------
        InvalidDateError
            If ``day`` is not a well-formed calendar date
        ArchiveNotFoundError
            If no archive exists, including for ``today`` and later
        StorageError
            If the archive cannot be read
        """
        target = parse_day(day)
        if today is not None and target >= today:
            raise ArchiveNotFoundError(target.isoformat())

        data = self._read(self.path_for(target))
        if data is None:
            raise ArchiveNotFoundError(target.isoformat())

        return decode_record(Archive.from_dict, data, self.path_for(target))

    def list_available_dates(self) -> list[date]:
        """List archived dates, most recent first."""
        dates: list[date] = []
        for file_path in self.archive_dir.glob(f"{ARCHIVE_PREFIX}*.json"):
            stem = file_path.stem[len(ARCHIVE_PREFIX) :]
            try:
                dates.append(date.fromisoformat(stem))
            except ValueError:
                logger.warning(f"Ignoring unrecognized archive file: {file_path.name}")

        return sorted(dates, reverse=True)

    def put(self, day: date, bucket: DailyBucket, *, archived_at: datetime) -> Archive:
        """Write an archive for ``day`` (create-only).

        Raises
        ------
        ArchiveExistsError
            If an archive for ``day`` already exists
        StorageError
            If the durable write fails; no partial file is left behind
        """
        if bucket.date != day:
            raise ValueError(f"Bucket dated {bucket.day} cannot be archived as {day.isoformat()}")

        path = self.path_for(day)
        if path.exists():
            raise ArchiveExistsError(day.isoformat())

        archive = Archive(bucket=bucket, archived_at=archived_at)
        try:
            with_retry(atomic_write_json, self.retry_policy, path, archive.to_dict(), fsync=self.fsync)
        except OSError as exc:
            raise StorageError(f"Failed to write archive for {day.isoformat()}: {exc}") from exc

        logger.info(
            f"Archived bucket for {day.isoformat()}",
            day=day.isoformat(),
            entries=len(bucket.entries),
        )
        return archive

    def delete(self, day: date) -> bool:
        """Delete the archive for ``day``.

        Returns
        -------
        bool
            True if a file was removed

        Raises
        ------
        OSError
            If the file exists but cannot be removed
        """
        try:
            self.path_for(day).unlink()
        except FileNotFoundError:
            return False
        return True

    def _read(self, path: Path) -> dict | None:
        try:
            return with_retry(read_json, self.retry_policy, path)
        except OSError as exc:
            raise StorageError(f"Failed to read {path.name}: {exc}") from exc
