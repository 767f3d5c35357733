"""Limit and threshold constants for kubemend.

All limit values, thresholds, and validation ranges.
"""

from typing import Final

# ============================================================================
# Budget limits
# ============================================================================

# Allowed disruptions for a pod that no budget governs. Kept finite so
# min()/subtraction stay well-defined.
UNBOUNDED_DISRUPTIONS: Final = 1_000_000

# ============================================================================
# Validation limits
# ============================================================================

MAX_CONCURRENCY_MIN: Final = 1
MAX_CONCURRENCY_MAX: Final = 64
MAX_ATTEMPTS_MIN: Final = 1
MAX_ATTEMPTS_MAX: Final = 20
FAILURE_RATIO_MIN: Final = 0.0
FAILURE_RATIO_MAX: Final = 1.0

__all__ = [
    "FAILURE_RATIO_MAX",
    "FAILURE_RATIO_MIN",
    "MAX_ATTEMPTS_MAX",
    "MAX_ATTEMPTS_MIN",
    "MAX_CONCURRENCY_MAX",
    "MAX_CONCURRENCY_MIN",
    "UNBOUNDED_DISRUPTIONS",
]
