"""Constants module for kubemend.

Centralized constants organized by domain:
- enums.py: All Enum class definitions
- values.py: Scalar constants (strings, markers, exit codes with Final)
- timeouts.py: Timeout values (seconds)
- limits.py: Limit values (max/min)
- defaults.py: Default values for settings
"""

from kubemend.constants.defaults import (
    MAX_ATTEMPTS_DEFAULT,
    MAX_CONCURRENCY_DEFAULT,
    PROTECTED_NAMESPACES_DEFAULT,
)
from kubemend.constants.enums import (
    BreakerState,
    ChangeType,
    EvictionResult,
    NodeStatus,
    PodPhase,
    RequestKind,
    ResourceKind,
)
from kubemend.constants.limits import UNBOUNDED_DISRUPTIONS
from kubemend.constants.timeouts import (
    CLUSTER_CHECK_TIMEOUT,
    CLUSTER_REQUEST_TIMEOUT,
    WATCH_TIMEOUT_SECONDS,
)
from kubemend.constants.values import (
    APP_NAME,
    EXIT_FATAL,
    EXIT_OK,
    EXIT_PARTIAL_FAILURE,
)

__all__ = [
    "APP_NAME",
    "CLUSTER_CHECK_TIMEOUT",
    "CLUSTER_REQUEST_TIMEOUT",
    "EXIT_FATAL",
    "EXIT_OK",
    "EXIT_PARTIAL_FAILURE",
    "MAX_ATTEMPTS_DEFAULT",
    "MAX_CONCURRENCY_DEFAULT",
    "PROTECTED_NAMESPACES_DEFAULT",
    "UNBOUNDED_DISRUPTIONS",
    "WATCH_TIMEOUT_SECONDS",
    "BreakerState",
    "ChangeType",
    "EvictionResult",
    "NodeStatus",
    "PodPhase",
    "RequestKind",
    "ResourceKind",
]
