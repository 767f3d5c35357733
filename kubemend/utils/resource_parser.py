"""Parsing utilities for Kubernetes int-or-string values.

PodDisruptionBudget ``minAvailable``/``maxUnavailable`` fields accept either an
absolute count or a percentage string:
- Integer: 2 -> 2
- Numeric string: "2" -> 2
- Percentage: "50%" -> scaled against the expected pod count
"""

from __future__ import annotations

import math


def parse_int_or_percent(value: int | str) -> tuple[int, bool]:
    """Split an int-or-string value into (number, is_percent).

    Args:
        value: Raw value as found in the API object (e.g., 2, "2", "50%")

    Returns:
        Tuple of the parsed number and whether it was a percentage.

    Raises:
        ValueError: When the value is neither an integer nor a percentage.
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid int-or-percent value: {value!r}")
    if isinstance(value, int):
        return value, False

    text = str(value).strip()
    if text.endswith("%"):
        return int(text[:-1]), True
    return int(text), False


def scaled_value(value: int | str, total: int, round_up: bool = True) -> int:
    """Resolve an int-or-percent value against a total.

    Percentages are rounded up by default, which is how the disruption
    controller scales both ``minAvailable`` and ``maxUnavailable``.

    Args:
        value: Raw int-or-string value
        total: Count the percentage applies to
        round_up: Round fractional results up (True) or down (False)

    Returns:
        The absolute value, never negative.
    """
    number, is_percent = parse_int_or_percent(value)
    if not is_percent:
        return max(0, number)
    raw = number * total / 100
    return max(0, math.ceil(raw) if round_up else math.floor(raw))


__all__ = ["parse_int_or_percent", "scaled_value"]
