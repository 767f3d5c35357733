"""Default values for settings.

All default values used in RemediationSettings model and validation fallback values.
"""

from typing import Final

# ============================================================================
# Executor defaults
# ============================================================================

MAX_CONCURRENCY_DEFAULT: Final = 4
MAX_ATTEMPTS_DEFAULT: Final = 5
MAX_BUDGET_REQUEUES_DEFAULT: Final = 3
BACKOFF_BASE_SECONDS_DEFAULT: Final = 1.0
BACKOFF_MAX_SECONDS_DEFAULT: Final = 60.0
BUDGET_REQUEUE_DELAY_SECONDS_DEFAULT: Final = 10.0

# ============================================================================
# Rate limiter / circuit breaker defaults
# ============================================================================

EVICTIONS_PER_SECOND_DEFAULT: Final = 2.0
BURST_DEFAULT: Final = 4
FAILURE_RATIO_THRESHOLD_DEFAULT: Final = 0.5
FAILURE_WINDOW_SECONDS_DEFAULT: Final = 60.0
BREAKER_MIN_SAMPLES_DEFAULT: Final = 4
BREAKER_COOLDOWN_SECONDS_DEFAULT: Final = 30.0

# ============================================================================
# Control loop defaults
# ============================================================================

RECONCILE_INTERVAL_SECONDS_DEFAULT: Final = 30.0
NODE_NOT_READY_GRACE_SECONDS_DEFAULT: Final = 300.0
POD_NOT_READY_GRACE_SECONDS_DEFAULT: Final = 600.0
NODE_REMEDIATION_COOLDOWN_SECONDS_DEFAULT: Final = 1800.0

PROTECTED_NAMESPACES_DEFAULT: Final = ("kube-system", "kube-public", "kube-node-lease")

__all__ = [
    "BACKOFF_BASE_SECONDS_DEFAULT",
    "BACKOFF_MAX_SECONDS_DEFAULT",
    "BREAKER_COOLDOWN_SECONDS_DEFAULT",
    "BREAKER_MIN_SAMPLES_DEFAULT",
    "BUDGET_REQUEUE_DELAY_SECONDS_DEFAULT",
    "BURST_DEFAULT",
    "EVICTIONS_PER_SECOND_DEFAULT",
    "FAILURE_RATIO_THRESHOLD_DEFAULT",
    "FAILURE_WINDOW_SECONDS_DEFAULT",
    "MAX_ATTEMPTS_DEFAULT",
    "MAX_BUDGET_REQUEUES_DEFAULT",
    "MAX_CONCURRENCY_DEFAULT",
    "NODE_NOT_READY_GRACE_SECONDS_DEFAULT",
    "NODE_REMEDIATION_COOLDOWN_SECONDS_DEFAULT",
    "POD_NOT_READY_GRACE_SECONDS_DEFAULT",
    "PROTECTED_NAMESPACES_DEFAULT",
    "RECONCILE_INTERVAL_SECONDS_DEFAULT",
]
