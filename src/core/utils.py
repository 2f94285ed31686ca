"""Core utility functions."""
from __future__ import annotations

import math
import uuid
from datetime import date, datetime, timezone
from typing import Any, Iterable, List, Optional

from core.logging_config import get_logger

LOGGER = get_logger(__name__)


def utcnow() -> datetime:
    """Get current UTC datetime with timezone info. Always use this instead of datetime.now()."""
    return datetime.now(timezone.utc)


def utcnow_iso() -> str:
    """Current UTC time as an ISO-8601 string, the form timestamps are persisted in."""
    return utcnow().isoformat()


def generate_document_id() -> str:
    """Generate a 20-character document id."""
    return uuid.uuid4().hex[:20]


def to_float(value: Any, default: float = 0.0) -> float:
    """
    Coerce a loosely-typed numeric field to float.

    Blank strings, None, NaN, infinities and anything unparseable become
    ``default``. Form-entered cruise numbers arrive as strings more often
    than not.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def to_int(value: Any, default: int = 0) -> int:
    """Coerce a loosely-typed count field to int, truncating decimals like parseInt."""
    number = to_float(value, default=float(default))
    return int(number)


def parse_date(value: Any) -> Optional[date]:
    """Parse a YYYY-MM-DD (or full ISO) string into a date; None when it doesn't parse."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def union_preserving_order(existing: Iterable[Any], additions: Iterable[Any]) -> List[Any]:
    """Append each addition not already present, keeping the original order."""
    result = list(existing)
    for item in additions:
        if item not in result:
            result.append(item)
    return result


__all__ = [
    "utcnow",
    "utcnow_iso",
    "generate_document_id",
    "to_float",
    "to_int",
    "parse_date",
    "union_preserving_order",
]
