"""All enum definitions for kubemend.

This module consolidates all enumerations used throughout the application.
"""

from enum import Enum

# =============================================================================
# Cluster Status Enums
# =============================================================================


class NodeStatus(Enum):
    """Node status values from Kubernetes API."""

    READY = "Ready"
    NOT_READY = "NotReady"
    UNKNOWN = "Unknown"


class PodPhase(Enum):
    """Pod phase values from Kubernetes API."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


# =============================================================================
# Observer Enums
# =============================================================================


class ResourceKind(Enum):
    """Resource kinds tracked by the cluster state observer."""

    PODS = "pods"
    NODES = "nodes"
    PDBS = "poddisruptionbudgets"


class ChangeType(Enum):
    """State change types emitted by the observer."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    BOOKMARK = "BOOKMARK"
    RESYNCED = "RESYNCED"


# =============================================================================
# Remediation Enums
# =============================================================================


class RequestKind(Enum):
    """Remediation request targets."""

    NODE = "node"
    PODS = "pods"


class EvictionResult(Enum):
    """Recorded result of one eviction attempt."""

    EVICTED = "Evicted"
    DENIED_BUDGET = "Denied(budget)"
    DENIED_API_ERROR = "Denied(apiError)"
    RETRYING = "Retrying"
    ABANDONED = "Abandoned"


class BreakerState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


__all__ = [
    "BreakerState",
    "ChangeType",
    "EvictionResult",
    "NodeStatus",
    "PodPhase",
    "RequestKind",
    "ResourceKind",
]
