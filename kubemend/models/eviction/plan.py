"""Remediation request and eviction plan models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, model_validator

from kubemend.constants.enums import RequestKind
from kubemend.models.core.pod_info import PodRef


class RemediationRequest(BaseModel):
    """What an operator (or the control loop) asked to remediate."""

    model_config = ConfigDict(frozen=True)

    kind: RequestKind
    node: str | None = None
    pod_keys: tuple[str, ...] = ()
    reason: str = ""

    @model_validator(mode="after")
    def _check_target(self) -> RemediationRequest:
        if self.kind == RequestKind.NODE and not self.node:
            raise ValueError("node request requires a node name")
        if self.kind == RequestKind.PODS and not self.pod_keys:
            raise ValueError("pods request requires at least one pod key")
        return self

    @classmethod
    def drain_node(cls, node: str, reason: str | None = None) -> RemediationRequest:
        return cls(kind=RequestKind.NODE, node=node, reason=reason or f"drain node {node}")

    @classmethod
    def evict_pods(
        cls, pod_keys: list[str] | tuple[str, ...], reason: str | None = None
    ) -> RemediationRequest:
        return cls(
            kind=RequestKind.PODS,
            pod_keys=tuple(pod_keys),
            reason=reason or "evict unhealthy pods",
        )


class EvictionPlanEntry(BaseModel):
    """One pod to evict, in plan order."""

    model_config = ConfigDict(frozen=True)

    pod: PodRef
    reason: str
    priority: int
    group: str  # budget group; entries of one group share an executor lane
