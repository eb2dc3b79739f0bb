"""Tests for the archive store."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from daybook.core.errors import ArchiveExistsError, ArchiveNotFoundError, InvalidDateError, StorageError
from daybook.core.models import DailyBucket, Entry
from daybook.storage import archive as archive_module
from daybook.storage.archive import ArchiveStore

NOW = datetime(2024, 1, 2, 0, 5, tzinfo=timezone.utc)


def bucket_for(day: str, *calories: float) -> DailyBucket:
    bucket = DailyBucket.empty(date.fromisoformat(day), NOW)
    for index, value in enumerate(calories):
        bucket.add(
            Entry(id=f"e{index}", owner_id="user-1", name=f"food {index}", metrics={"calories": value}, added_at=NOW),
            NOW,
        )
    return bucket


def test_put_and_get(archives: ArchiveStore):
    archives.put(date(2024, 1, 1), bucket_for("2024-01-01", 95, 105), archived_at=NOW)

    archive = archives.get_archive("2024-01-01")

    assert archive.date == date(2024, 1, 1)
    assert len(archive.entries) == 2
    assert archive.bucket.aggregate_totals == {"calories": 200}
    assert archive.archived_at == NOW


def test_file_layout(archives: ArchiveStore, storage_root):
    archives.put(date(2024, 1, 1), bucket_for("2024-01-01", 95), archived_at=NOW)

    assert (storage_root / "archive" / "bucket-2024-01-01.json").exists()


def test_put_is_create_only(archives: ArchiveStore):
    archives.put(date(2024, 1, 1), bucket_for("2024-01-01", 95), archived_at=NOW)

    with pytest.raises(ArchiveExistsError):
        archives.put(date(2024, 1, 1), bucket_for("2024-01-01", 1), archived_at=NOW)

    assert len(archives.get_archive("2024-01-01").entries) == 1


def test_put_rejects_date_mismatch(archives: ArchiveStore):
    with pytest.raises(ValueError):
        archives.put(date(2024, 1, 2), bucket_for("2024-01-01", 95), archived_at=NOW)


def test_missing_archive_is_not_found(archives: ArchiveStore):
    with pytest.raises(ArchiveNotFoundError):
        archives.get_archive("2023-12-31")


def test_malformed_date(archives: ArchiveStore):
    with pytest.raises(InvalidDateError):
        archives.get_archive("2024-13-01")


def test_list_available_dates_most_recent_first(archives: ArchiveStore):
    for day in ("2024-01-03", "2024-01-01", "2024-01-02"):
        archives.put(date.fromisoformat(day), bucket_for(day, 1), archived_at=NOW)
    (archives.archive_dir / "bucket-garbage.json").write_text("{}")
    (archives.archive_dir / "notes.txt").write_text("ignored")

    assert archives.list_available_dates() == [date(2024, 1, 3), date(2024, 1, 2), date(2024, 1, 1)]


def test_delete(archives: ArchiveStore):
    archives.put(date(2024, 1, 1), bucket_for("2024-01-01", 1), archived_at=NOW)

    assert archives.delete(date(2024, 1, 1)) is True
    assert archives.delete(date(2024, 1, 1)) is False
    assert not archives.exists(date(2024, 1, 1))


def test_failed_write_surfaces_storage_error(archives: ArchiveStore, monkeypatch):
    def failing_write(*args, **kwargs):
        raise OSError("read-only file system")

    monkeypatch.setattr(archive_module, "atomic_write_json", failing_write)
    archives.retry_policy.base_delay = 0

    with pytest.raises(StorageError, match="read-only"):
        archives.put(date(2024, 1, 1), bucket_for("2024-01-01", 1), archived_at=NOW)

    assert not archives.exists(date(2024, 1, 1))


def test_corrupt_archive(archives: ArchiveStore):
    archives.archive_dir.joinpath("bucket-2024-01-01.json").write_text("{broken")

    with pytest.raises(StorageError):
        archives.get_archive("2024-01-01")


@pytest.mark.parametrize(
    "content",
    ['{"entries": []}', '{"date": "2024-13-01"}', '{"date": "2024-01-01", "entries": [1], "archived_at": "2024-01-02T00:05:00Z"}'],
)
def test_malformed_archive_record(archives: ArchiveStore, content):
    archives.archive_dir.joinpath("bucket-2024-01-01.json").write_text(content)

    with pytest.raises(StorageError, match="Malformed record"):
        archives.get_archive("2024-01-01")


def test_today_and_later_not_found(archives: ArchiveStore):
    """Archives only cover days strictly before the current logical day."""
    archives.put(date(2024, 1, 1), bucket_for("2024-01-01", 95), archived_at=NOW)

    with pytest.raises(ArchiveNotFoundError):
        archives.get_archive("2024-01-01", today=date(2024, 1, 1))

    assert archives.get_archive("2024-01-01", today=date(2024, 1, 2)).date == date(2024, 1, 1)
