"""Entry payload validation.

Invalid payloads never touch disk; errors are surfaced to callers
as :class:`ValidationError` with every individual failure collected.

Accepted payload shape::

    {"name": "apple", "metrics": {"calories": 95}, "media_ref": "img-1"}

Numeric top-level fields are folded into ``metrics``, so
``{"name": "apple", "calories": 95}`` is equivalent. Remaining
non-numeric fields are kept as descriptive attributes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

import jsonschema  # type: ignore[import-untyped]

from .errors import ValidationError

__all__ = [
    "ENTRY_PAYLOAD_SCHEMA",
    "EntryPayload",
    "RESERVED_FIELDS",
    "validate_entry_payload",
]

RESERVED_FIELDS = frozenset({"id", "owner_id", "added_at", "is_temporary", "attributes"})

ENTRY_PAYLOAD_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string", "minLength": 1, "pattern": r"\S"},
        "metrics": {
            "type": "object",
            "additionalProperties": {"type": "number", "minimum": 0},
        },
        "media_ref": {"type": ["string", "null"]},
    },
}

_validator = jsonschema.Draft7Validator(ENTRY_PAYLOAD_SCHEMA)


@dataclass
class EntryPayload:
    """Validated, normalized entry payload."""

    name: str
    metrics: dict[str, float]
    media_ref: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_finite(value: int | float) -> bool:
    try:
        return math.isfinite(value)
    except OverflowError:
        # Integers beyond float range.
        return False


def validate_entry_payload(payload: Any) -> EntryPayload:
    """Validate and normalize a raw entry payload.

    Parameters
    ----------
    payload
        Raw payload from a collaborator

    Returns
    -------
    EntryPayload
        Normalized payload

    Raises
    ------
    ValidationError
        If the name is missing, no numeric metric is present, or a
        metric is negative or not finite
    """
    if not isinstance(payload, dict):
        raise ValidationError("Entry payload must be an object", ["payload is not an object"])

    errors: list[str] = []
    for error in _validator.iter_errors(payload):
        error_path = " -> ".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
        errors.append(f"[{error_path}] {error.message}")

    reserved = sorted(RESERVED_FIELDS.intersection(payload))
    for key in reserved:
        errors.append(f"[{key}] is a reserved field")

    metrics: dict[str, float] = {}
    attributes: dict[str, Any] = {}

    nested = payload.get("metrics")
    if isinstance(nested, dict):
        metrics.update({str(k): v for k, v in nested.items() if _is_number(v)})

    for key, value in payload.items():
        if key in ("name", "metrics", "media_ref") or key in RESERVED_FIELDS:
            continue
        if _is_number(value):
            if value < 0:
                errors.append(f"[{key}] {value} is less than the minimum of 0")
            metrics[key] = value
        else:
            attributes[key] = value

    for key, value in metrics.items():
        if not _is_finite(value):
            errors.append(f"[metrics -> {key}] must be a finite number")

    if not metrics:
        errors.append("[metrics] at least one numeric metric is required")

    if errors:
        raise ValidationError(f"Invalid entry payload: {'; '.join(errors)}", errors)

    return EntryPayload(
        name=payload["name"].strip(),
        metrics=metrics,
        media_ref=payload.get("media_ref"),
        attributes=attributes,
    )
