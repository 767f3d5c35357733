"""Controllers module for kubemend.

This module provides the cluster observer, the remediation pipeline built on
top of it, and the error taxonomy they share.
"""

from __future__ import annotations

# Base classes
from kubemend.controllers.base import (
    AsyncControllerMixin,
    BaseController,
    WorkerResult,
)

# Cluster domain
from kubemend.controllers.cluster import (
    ClusterClient,
    ClusterStateObserver,
    KubernetesClusterClient,
    StateChange,
)

# Remediation domain
from kubemend.controllers.remediation import (
    DisruptionBudgetTracker,
    EvictionExecutor,
    EvictionPlanner,
    EvictionRateLimiter,
    RemediationController,
    RemediationReport,
)

__all__ = [
    # Base
    "AsyncControllerMixin",
    "BaseController",
    # Cluster domain
    "ClusterClient",
    "ClusterStateObserver",
    # Remediation domain
    "DisruptionBudgetTracker",
    "EvictionExecutor",
    "EvictionPlanner",
    "EvictionRateLimiter",
    "KubernetesClusterClient",
    "RemediationController",
    "RemediationReport",
    "StateChange",
    "WorkerResult",
]
