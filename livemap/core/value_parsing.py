"""Coercion of free-form payload values into coordinates, index keys and timestamps.

Runtime rows carry a schemaless payload map, so every value read out of it
goes through one of these helpers. Nothing here raises for bad input:
unusable values come back as NaN or None and the caller decides.
"""

from datetime import datetime, timezone
from math import isfinite, nan
from typing import Any


def coerce_number(value: Any) -> float:
    """Coerce a payload value to a float.

    Numbers pass through, numeric-looking strings are parsed, everything
    else (None, bools, dicts, "abc") becomes NaN.
    """
    if isinstance(value, bool):
        return nan
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return nan
    return nan


def parse_index_key(value: Any) -> float | None:
    """Numeric sort key for an index column value, or None if not parsable."""
    if value is None:
        return None
    number = coerce_number(value)
    if not isfinite(number):
        return None
    return number


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a storage timestamp into an aware datetime (UTC if naive)."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
