"""Timeout constants for kubemend.

All timeout and interval values for API requests, async operations, and loop cycles.
"""

from typing import Final

# ============================================================================
# API/Cluster timeouts (seconds)
# ============================================================================

CLUSTER_REQUEST_TIMEOUT: Final = 30
CLUSTER_CHECK_TIMEOUT: Final = 12.0

# Server-side watch timeout; the stream ends cleanly and is resumed
WATCH_TIMEOUT_SECONDS: Final = 300

# ============================================================================
# Async operation timeouts (float, in seconds)
# ============================================================================

INITIAL_SYNC_TIMEOUT: Final = 60.0
RESYNC_BACKOFF_SECONDS: Final = 1.0
RESYNC_BACKOFF_MAX_SECONDS: Final = 30.0
SHUTDOWN_GRACE_SECONDS: Final = 10.0

# How often a worker re-checks a half-open breaker whose probe is in flight
BREAKER_POLL_INTERVAL: Final = 0.1

__all__ = [
    "BREAKER_POLL_INTERVAL",
    "CLUSTER_CHECK_TIMEOUT",
    "CLUSTER_REQUEST_TIMEOUT",
    "INITIAL_SYNC_TIMEOUT",
    "RESYNC_BACKOFF_MAX_SECONDS",
    "RESYNC_BACKOFF_SECONDS",
    "SHUTDOWN_GRACE_SECONDS",
    "WATCH_TIMEOUT_SECONDS",
]
