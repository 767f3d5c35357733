"""Utility functions for kubemend."""

from kubemend.utils.async_utils import interruptible_sleep
from kubemend.utils.resource_parser import parse_int_or_percent, scaled_value

__all__ = [
    # Async
    "interruptible_sleep",
    # Budget thresholds
    "parse_int_or_percent",
    "scaled_value",
]
