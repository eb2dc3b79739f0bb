"""Error taxonomy for the daybook store.

Callers only ever see one of a small set of typed outcomes:
validation, not-found, conflict, or storage failure.
"""

from __future__ import annotations

__all__ = [
    "ArchiveExistsError",
    "ArchiveNotFoundError",
    "ConflictError",
    "DaybookError",
    "EntryNotFoundError",
    "InvalidDateError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
]


class DaybookError(Exception):
    """Base exception for daybook operations."""

    pass


class ValidationError(DaybookError):
    """Raised when input is rejected before any side effect.

    Parameters
    ----------
    message
        Human-readable summary
    errors
        Individual validation failures
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class InvalidDateError(ValidationError):
    """Raised when a date is not a well-formed YYYY-MM-DD calendar date."""

    pass


class NotFoundError(DaybookError):
    """Raised when a requested entry or archive does not exist."""

    pass


class EntryNotFoundError(NotFoundError):
    """Raised when no entry with the given id exists for the owner."""

    def __init__(self, owner_id: str, entry_id: str) -> None:
        super().__init__(f"Entry not found: {entry_id} (owner {owner_id})")
        self.owner_id = owner_id
        self.entry_id = entry_id


class ArchiveNotFoundError(NotFoundError):
    """Raised when no archive exists for a date."""

    def __init__(self, day: str) -> None:
        super().__init__(f"No archive for {day}")
        self.day = day


class ConflictError(DaybookError):
    """Raised when the bucket changed underneath an operation.

    The operation must be retried against the new bucket.
    """

    pass


class ArchiveExistsError(ConflictError):
    """Raised when an archive for a date has already been written."""

    def __init__(self, day: str) -> None:
        super().__init__(f"Archive already exists for {day}")
        self.day = day


class StorageError(DaybookError):
    """Raised when a durable read or write fails."""

    pass
