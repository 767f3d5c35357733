"""Core cluster object models."""

from kubemend.models.core.node_info import NodeRef
from kubemend.models.core.pod_info import OwnerRef, PodRef, pod_key

__all__ = ["NodeRef", "OwnerRef", "PodRef", "pod_key"]
