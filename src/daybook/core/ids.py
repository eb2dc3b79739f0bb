"""Entry identifier generation.

ID Format: entry-YYYYMMDD-HHmmss-<hex>
Example: entry-20240101-143012-4f3a2b1c9d0e
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone

__all__ = [
    "ENTRY_ID_PREFIX",
    "generate_entry_id",
    "is_valid_entry_id",
]

ENTRY_ID_PREFIX = "entry"

_ENTRY_ID_PATTERN = re.compile(r"^entry-\d{8}-\d{6}-[0-9a-f]{12}$")


def generate_entry_id(timestamp: datetime | None = None) -> str:
    """Generate a unique entry ID.

    Parameters
    ----------
    timestamp
        Creation time (default: now, UTC)

    Returns
    -------
    str
        Entry ID; the random suffix keeps IDs unique within one second
    """
    if timestamp is None:
        timestamp = datetime.now(timezone.utc)
    elif timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc)

    return f"{ENTRY_ID_PREFIX}-{timestamp.strftime('%Y%m%d-%H%M%S')}-{uuid.uuid4().hex[:12]}"


def is_valid_entry_id(value: str) -> bool:
    """Check whether a string looks like a generated entry ID."""
    return bool(_ENTRY_ID_PATTERN.match(value))
