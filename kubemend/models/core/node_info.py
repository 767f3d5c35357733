"""Node snapshot models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from kubemend.constants.enums import NodeStatus
from kubemend.models.core.pod_info import PodRef


class NodeRef(BaseModel):
    """Immutable snapshot of a node and the pods scheduled on it."""

    model_config = ConfigDict(frozen=True)

    name: str
    status: NodeStatus = NodeStatus.UNKNOWN
    status_since: datetime | None = None  # last Ready condition transition
    unschedulable: bool = False
    pods: tuple[PodRef, ...] = ()

    @property
    def is_ready(self) -> bool:
        return self.status == NodeStatus.READY
