"""Shared helpers for parsing API-shaped dictionaries."""

from __future__ import annotations

from contextlib import suppress
from datetime import datetime
from typing import Any


def parse_iso_timestamp(timestamp: Any) -> datetime | None:
    """Parse kubernetes timestamp strings into aware datetimes."""
    if isinstance(timestamp, datetime):
        return timestamp
    if not isinstance(timestamp, str) or not timestamp:
        return None
    with suppress(ValueError, TypeError):
        return datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    return None


def find_condition(status: dict[str, Any], condition_type: str) -> dict[str, Any] | None:
    """Return the status condition of the given type, if present."""
    for condition in status.get("conditions") or []:
        if isinstance(condition, dict) and condition.get("type") == condition_type:
            return condition
    return None


def coerce_int(value: Any, default: int = 0) -> int:
    """Convert arbitrary value to int safely."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
