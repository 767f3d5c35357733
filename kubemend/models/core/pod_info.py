"""Pod snapshot models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from kubemend.constants.enums import PodPhase
from kubemend.constants.values import DAEMONSET_OWNER_KIND

_TERMINAL_PHASES = frozenset({PodPhase.SUCCEEDED, PodPhase.FAILED})


def pod_key(namespace: str, name: str) -> str:
    """Build the ``namespace/name`` key used for pods and budgets."""
    return f"{namespace}/{name}"


class OwnerRef(BaseModel):
    """Controlling owner of a pod."""

    model_config = ConfigDict(frozen=True)

    kind: str
    name: str


class PodRef(BaseModel):
    """Immutable snapshot of a pod as last seen by the observer."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    name: str
    node: str | None = None
    owner: OwnerRef | None = None
    ready: bool = False
    phase: PodPhase = PodPhase.UNKNOWN
    labels: dict[str, str] = Field(default_factory=dict)
    restart_count: int = 0
    created_at: datetime | None = None
    ready_since: datetime | None = None  # last Ready condition transition
    pending_deletion: bool = False
    mirror: bool = False

    @property
    def key(self) -> str:
        return pod_key(self.namespace, self.name)

    @property
    def workload(self) -> str:
        """Owning workload identity, or the pod itself for orphans."""
        if self.owner is None:
            return f"pod:{self.key}"
        return f"{self.owner.kind}:{self.namespace}/{self.owner.name}"

    @property
    def is_daemonset(self) -> bool:
        return self.owner is not None and self.owner.kind == DAEMONSET_OWNER_KIND

    @property
    def is_terminal(self) -> bool:
        return self.phase in _TERMINAL_PHASES

    @property
    def is_healthy(self) -> bool:
        """Ready and not on its way out; what a budget counts as healthy."""
        return self.ready and not self.pending_deletion and not self.is_terminal
