"""Storage layer for the working bucket and archives, with file locking."""

from .archive import ArchiveStore
from .files import BucketLock, atomic_write_json, read_json
from .working_set import WorkingSetStore

__all__ = [
    "ArchiveStore",
    "BucketLock",
    "WorkingSetStore",
    "atomic_write_json",
    "read_json",
]
