"""Core components of daybook: models, errors, time, rollover and scheduling."""

from .config import Config, ConfigError, Settings, load_settings
from .errors import (
    ArchiveExistsError,
    ArchiveNotFoundError,
    ConflictError,
    DaybookError,
    EntryNotFoundError,
    InvalidDateError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from .models import (
    Archive,
    ArchiveView,
    BucketState,
    BucketView,
    DailyBucket,
    Entry,
    ResetMarker,
    RetentionPolicy,
    compute_totals,
)
from .rollover import RolloverEngine, RolloverResult
from .scheduler import Job, JobStatus, Scheduler, create_scheduler
from .time import Clock, FixedClock, SystemClock, parse_day

__all__ = [
    "Archive",
    "ArchiveExistsError",
    "ArchiveNotFoundError",
    "ArchiveView",
    "BucketState",
    "BucketView",
    "Clock",
    "Config",
    "ConfigError",
    "ConflictError",
    "DailyBucket",
    "DaybookError",
    "Entry",
    "EntryNotFoundError",
    "FixedClock",
    "InvalidDateError",
    "Job",
    "JobStatus",
    "NotFoundError",
    "ResetMarker",
    "RetentionPolicy",
    "RolloverEngine",
    "RolloverResult",
    "Scheduler",
    "Settings",
    "StorageError",
    "SystemClock",
    "ValidationError",
    "compute_totals",
    "create_scheduler",
    "load_settings",
    "parse_day",
]
