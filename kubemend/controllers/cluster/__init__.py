"""Init file for cluster module."""

from kubemend.controllers.cluster.client import (
    ClusterClient,
    KubernetesClusterClient,
    WatchEvent,
)
from kubemend.controllers.cluster.observer import ClusterStateObserver, StateChange
from kubemend.controllers.cluster.parsers import NodeParser, PDBParser, PodParser

__all__ = [
    "ClusterClient",
    "ClusterStateObserver",
    "KubernetesClusterClient",
    "NodeParser",
    "PDBParser",
    "PodParser",
    "StateChange",
    "WatchEvent",
]
