"""The mutable "current day" bucket.

Layout under the storage root:
- ``current.json``: the working bucket (entries + aggregate totals)
- ``reset-marker.json``: the rollover marker
- ``.locks/bucket.lock``: advisory lock file

Every read or mutation runs inside one :class:`BucketLock` and starts
with a lazy rollover check, so no operation can observe a half
rolled-over state. Bucket writes are version-stamped: a write fails
with :class:`ConflictError` if the on-disk version moved underneath it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from ..core.errors import ConflictError, EntryNotFoundError, StorageError, ValidationError
from ..core.ids import generate_entry_id
from ..core.models import BucketView, DailyBucket, Entry, ResetMarker
from ..core.retry import RetryPolicy, with_retry
from ..core.rollover import RolloverEngine
from ..core.time import Clock
from ..core.validation import validate_entry_payload
from ..observability.loguru_config import get_logger
from .archive import ArchiveStore
from .files import BucketLock, atomic_write_json, decode_record, read_json

__all__ = [
    "WorkingSetStore",
]

logger = get_logger("storage")


def _stored_version(data: dict[str, Any]) -> int:
    return int(data.get("version", 0))


class WorkingSetStore:
    """Single writer for the current day bucket.

    Example:
        >>> store = WorkingSetStore(Path("data"), archives=archives, clock=SystemClock())
        >>> entry = store.add_entry("user-1", {"name": "apple", "calories": 95})
        >>> store.get_bucket("user-1").totals
        {'calories': 95}
    """

    def __init__(
        self,
        root: Path,
        *,
        archives: ArchiveStore,
        clock: Clock,
        lock_timeout: float = 10.0,
        enable_file_locks: bool = True,
        retry_policy: RetryPolicy | None = None,
        archive_empty_days: bool = False,
        fsync: bool = True,
    ) -> None:
        """Initialize the working set store.

        Parameters
        ----------
        root
            Storage root directory
        archives
            Archive store receiving rolled-over buckets
        clock
            Calendar clock defining "today"
        lock_timeout
            Bucket lock acquisition timeout in seconds
        enable_file_locks
            Also take an fcntl lock around the bucket
        retry_policy
            Retry policy for durable reads and writes
        archive_empty_days
            Archive days that ended with no entries
        fsync
            Flush writes to disk
        """
        self.root = root
        self.current_path = root / "current.json"
        self.marker_path = root / "reset-marker.json"
        self.clock = clock
        self.retry_policy = retry_policy or RetryPolicy()
        self.fsync = fsync
        self.lock = BucketLock(
            root / ".locks" / "bucket.lock",
            timeout=lock_timeout,
            enable_file_lock=enable_file_locks,
        )
        root.mkdir(parents=True, exist_ok=True)

        self.rollover = RolloverEngine(
            self,
            archives,
            clock=clock,
            archive_empty_days=archive_empty_days,
        )

    # Operations

    def add_entry(self, owner_id: str, payload: dict[str, Any]) -> Entry:
        """Validate and append an entry to the current bucket.

        Raises
        ------
        ValidationError
            If the owner or payload is invalid (nothing is written)
        ConflictError
            If the bucket changed underneath the write
        StorageError
            If the durable write fails after retries
        """
        _require_owner(owner_id)
        normalized = validate_entry_payload(payload)

        with self.lock:
            bucket = self.rollover.current_bucket()
            now = self.clock.now()
            entry = Entry(
                id=generate_entry_id(now),
                owner_id=owner_id,
                name=normalized.name,
                metrics=normalized.metrics,
                added_at=now,
                media_ref=normalized.media_ref,
                attributes=normalized.attributes,
            )
            bucket.add(entry, now)
            self.save_bucket(bucket)

        logger.debug(f"Entry added: {entry.id}", owner_id=owner_id, day=bucket.day)
        return entry

    def remove_entry(self, owner_id: str, entry_id: str) -> None:
        """Remove an owner's entry from the current bucket.

        Raises
        ------
        EntryNotFoundError
            If the current bucket has no such entry for the owner
        """
        _require_owner(owner_id)

        with self.lock:
            bucket = self.rollover.current_bucket()
            entry = bucket.find(owner_id, entry_id)
            if entry is None:
                raise EntryNotFoundError(owner_id, entry_id)

            bucket.remove(entry, self.clock.now())
            self.save_bucket(bucket)

        logger.debug(f"Entry removed: {entry_id}", owner_id=owner_id, day=bucket.day)

    def get_bucket(self, owner_id: str) -> BucketView:
        """Return the owner's view of the current bucket with recomputed totals."""
        _require_owner(owner_id)

        with self.lock:
            bucket = self.rollover.current_bucket()

        return bucket.view(owner_id)

    # Persistence (callers hold ``self.lock``)

    def load_bucket(self) -> DailyBucket | None:
        data = self._read(self.current_path)
        return decode_record(DailyBucket.from_dict, data, self.current_path) if data is not None else None

    def save_bucket(self, bucket: DailyBucket, *, expected_version: int | None = None) -> None:
        """Persist the whole bucket with a version check.

        Parameters
        ----------
        bucket
            Bucket to write; its version is bumped on success
        expected_version
            Version that must currently be on disk (default: ``bucket.version``)

        Raises
        ------
        ConflictError
            If the on-disk version differs from ``expected_version``
        StorageError
            If the write fails after retries
        """
        expected = bucket.version if expected_version is None else expected_version
        data = self._read(self.current_path)
        on_disk = decode_record(_stored_version, data, self.current_path) if data is not None else 0
        if on_disk != expected:
            raise ConflictError(
                f"Bucket version changed (expected {expected}, found {on_disk}); retry against the new bucket"
            )

        new_version = expected + 1
        payload = bucket.to_dict()
        payload["version"] = new_version
        self._write(self.current_path, payload)
        bucket.version = new_version

    def load_marker(self) -> ResetMarker:
        data = self._read(self.marker_path)
        return decode_record(ResetMarker.from_dict, data, self.marker_path) if data is not None else ResetMarker()

    def advance_marker(self, marker: ResetMarker) -> ResetMarker:
        """Persist a marker, never moving the stored date backwards."""
        current = self.load_marker()
        if marker.last_rollover_date is None or current.covers(marker.last_rollover_date):
            return current

        self._write(self.marker_path, marker.to_dict())
        return marker

    def _read(self, path: Path) -> dict[str, Any] | None:
        try:
            return with_retry(read_json, self.retry_policy, path)
        except OSError as exc:
            raise StorageError(f"Failed to read {path.name}: {exc}") from exc

    def _write(self, path: Path, data: dict[str, Any]) -> None:
        try:
            with_retry(atomic_write_json, self.retry_policy, path, data, fsync=self.fsync)
        except OSError as exc:
            raise StorageError(f"Failed to write {path.name}: {exc}") from exc


def _require_owner(owner_id: str) -> None:
    if not isinstance(owner_id, str) or not owner_id.strip():
        raise ValidationError("owner_id is required", ["[owner_id] must be a non-empty string"])
