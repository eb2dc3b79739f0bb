"""Data model for day buckets, archives and the rollover marker.

All records serialize to plain JSON-compatible dicts. Dates are
YYYY-MM-DD strings, timestamps ISO-8601 UTC.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Iterable

from .errors import ValidationError
from .time import format_utc_iso8601, parse_day, parse_utc_iso8601

__all__ = [
    "Archive",
    "ArchiveView",
    "BucketState",
    "BucketView",
    "DailyBucket",
    "Entry",
    "ResetMarker",
    "RetentionPolicy",
    "compute_totals",
]


class BucketState(Enum):
    """Lifecycle state of a day bucket."""

    ACTIVE = "active"
    ARCHIVING = "archiving"
    ARCHIVED = "archived"
    PRUNED = "pruned"


def compute_totals(entries: Iterable[Entry]) -> dict[str, float]:
    """Sum every metric across entries.

    Parameters
    ----------
    entries
        Entries to aggregate

    Returns
    -------
    dict[str, float]
        Metric name -> total, in order of first appearance
    """
    totals: dict[str, float] = {}
    for entry in entries:
        for metric, value in entry.metrics.items():
            totals[metric] = totals.get(metric, 0) + value
    return totals


@dataclass(frozen=True)
class Entry:
    """A single record submitted for the current day."""

    id: str
    owner_id: str
    name: str
    metrics: dict[str, float]
    added_at: datetime
    is_temporary: bool = True
    media_ref: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "metrics": dict(self.metrics),
            "added_at": format_utc_iso8601(self.added_at),
            "is_temporary": self.is_temporary,
            "media_ref": self.media_ref,
            "attributes": dict(self.attributes),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Entry:
        return cls(
            id=str(data["id"]),
            owner_id=str(data["owner_id"]),
            name=str(data["name"]),
            metrics=dict(data.get("metrics", {})),
            added_at=parse_utc_iso8601(data["added_at"]),
            is_temporary=bool(data.get("is_temporary", True)),
            media_ref=data.get("media_ref"),
            attributes=dict(data.get("attributes", {})),
        )


@dataclass
class DailyBucket:
    """The mutable working set for one calendar day.

    ``aggregate_totals`` is recomputed from the entries by :meth:`add` and
    :meth:`remove`; ``version`` is bumped on every persisted write.
    """

    date: date
    entries: list[Entry] = field(default_factory=list)
    aggregate_totals: dict[str, float] = field(default_factory=dict)
    last_updated: datetime | None = None
    version: int = 0

    @classmethod
    def empty(cls, day: date, now: datetime) -> DailyBucket:
        """Create a fresh bucket with no entries."""
        return cls(date=day, last_updated=now)

    @property
    def day(self) -> str:
        return self.date.isoformat()

    def add(self, entry: Entry, now: datetime) -> None:
        self.entries.append(entry)
        self._refresh_totals()
        self.last_updated = now

    def find(self, owner_id: str, entry_id: str) -> Entry | None:
        for entry in self.entries:
            if entry.id == entry_id and entry.owner_id == owner_id:
                return entry
        return None

    def remove(self, entry: Entry, now: datetime) -> None:
        """Remove an entry; metrics it alone carried stay listed at zero."""
        self.entries.remove(entry)
        self._refresh_totals()
        self.last_updated = now

    def _refresh_totals(self) -> None:
        # Summed afresh so float totals never drift from the entries.
        totals = dict.fromkeys(self.aggregate_totals, 0)
        totals.update(compute_totals(self.entries))
        self.aggregate_totals = {metric: max(0, value) for metric, value in totals.items()}

    def entries_for(self, owner_id: str) -> list[Entry]:
        return [entry for entry in self.entries if entry.owner_id == owner_id]

    def view(self, owner_id: str | None = None) -> BucketView:
        entries = list(self.entries) if owner_id is None else self.entries_for(owner_id)
        return BucketView(
            date=self.day,
            entries=entries,
            totals=compute_totals(entries),
            last_updated=self.last_updated,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.day,
            "entries": [entry.to_dict() for entry in self.entries],
            "aggregate_totals": dict(self.aggregate_totals),
            "last_updated": format_utc_iso8601(self.last_updated) if self.last_updated else None,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DailyBucket:
        last_updated = data.get("last_updated")
        return cls(
            date=parse_day(data["date"]),
            entries=[Entry.from_dict(item) for item in data.get("entries", [])],
            aggregate_totals=dict(data.get("aggregate_totals", {})),
            last_updated=parse_utc_iso8601(last_updated) if last_updated else None,
            version=int(data.get("version", 0)),
        )


@dataclass(frozen=True)
class Archive:
    """Immutable snapshot of a past day's bucket."""

    bucket: DailyBucket
    archived_at: datetime

    @property
    def date(self) -> date:
        return self.bucket.date

    @property
    def entries(self) -> list[Entry]:
        return list(self.bucket.entries)

    def view(self, owner_id: str | None = None) -> ArchiveView:
        bucket_view = self.bucket.view(owner_id)
        return ArchiveView(
            date=bucket_view.date,
            entries=bucket_view.entries,
            totals=bucket_view.totals,
            archived_at=self.archived_at,
        )

    def to_dict(self) -> dict[str, Any]:
        data = self.bucket.to_dict()
        data["archived_at"] = format_utc_iso8601(self.archived_at)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Archive:
        return cls(
            bucket=DailyBucket.from_dict(data),
            archived_at=parse_utc_iso8601(data["archived_at"]),
        )


@dataclass(frozen=True)
class ResetMarker:
    """Most recent bucket date whose rollover has been applied."""

    last_rollover_date: date | None = None

    def covers(self, day: date) -> bool:
        return self.last_rollover_date is not None and self.last_rollover_date >= day

    def advance(self, day: date) -> ResetMarker:
        """Return a marker moved forward to ``day``; never moves backwards."""
        if self.covers(day):
            return self
        return replace(self, last_rollover_date=day)

    def to_dict(self) -> dict[str, Any]:
        return {
            "last_rollover_date": self.last_rollover_date.isoformat() if self.last_rollover_date else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResetMarker:
        value = data.get("last_rollover_date")
        return cls(last_rollover_date=parse_day(value) if value else None)


@dataclass(frozen=True)
class RetentionPolicy:
    """How long archives are kept.

    Attributes
    ----------
    max_age_days : int
        Archives dated strictly before ``today - max_age_days`` are pruned
    """

    max_age_days: int = 30

    def __post_init__(self) -> None:
        if self.max_age_days < 0:
            raise ValidationError(
                f"max_age_days must be non-negative, got: {self.max_age_days}",
                ["[max_age_days] must be greater than or equal to 0"],
            )

    def cutoff(self, today: date) -> date:
        return today - timedelta(days=self.max_age_days)


@dataclass
class BucketView:
    """Owner-filtered view of the current bucket."""

    date: str
    entries: list[Entry]
    totals: dict[str, float]
    last_updated: datetime | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "entries": [entry.to_dict() for entry in self.entries],
            "totals": dict(self.totals),
            "last_updated": format_utc_iso8601(self.last_updated) if self.last_updated else None,
        }


@dataclass
class ArchiveView:
    """Optionally owner-filtered view of an archive."""

    date: str
    entries: list[Entry]
    totals: dict[str, float]
    archived_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "entries": [entry.to_dict() for entry in self.entries],
            "totals": dict(self.totals),
            "archived_at": format_utc_iso8601(self.archived_at),
        }
