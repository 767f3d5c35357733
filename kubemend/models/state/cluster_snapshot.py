"""Point-in-time view of the observed cluster state."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from kubemend.models.core.node_info import NodeRef
from kubemend.models.core.pod_info import PodRef
from kubemend.models.pdb.pdb_info import DisruptionBudget


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClusterSnapshot(BaseModel):
    """Immutable, internally consistent copy of the observer's maps."""

    model_config = ConfigDict(frozen=True)

    pods: dict[str, PodRef] = Field(default_factory=dict)
    nodes: dict[str, NodeRef] = Field(default_factory=dict)
    budgets: dict[str, DisruptionBudget] = Field(default_factory=dict)
    taken_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def build(
        cls,
        pods: dict[str, PodRef],
        nodes: dict[str, NodeRef],
        budgets: dict[str, DisruptionBudget],
    ) -> ClusterSnapshot:
        """Copy the maps and attach each node's scheduled pods."""
        by_node: dict[str, list[PodRef]] = {}
        for pod in pods.values():
            if pod.node:
                by_node.setdefault(pod.node, []).append(pod)
        attached = {
            name: node.model_copy(
                update={"pods": tuple(sorted(by_node.get(name, ()), key=lambda p: p.key))}
            )
            for name, node in nodes.items()
        }
        return cls(pods=dict(pods), nodes=attached, budgets=dict(budgets))

    def pods_on_node(self, node: str) -> list[PodRef]:
        node_ref = self.nodes.get(node)
        if node_ref is not None:
            return list(node_ref.pods)
        # Watch catch-up: the node may not be known yet while its pods are.
        return sorted((p for p in self.pods.values() if p.node == node), key=lambda p: p.key)

    def budgets_for(self, pod: PodRef) -> list[DisruptionBudget]:
        """Budgets governing a pod, ordered by key."""
        return sorted(
            (b for b in self.budgets.values() if b.selects(pod.namespace, pod.labels)),
            key=lambda b: b.key,
        )

    def pods_selected_by(self, budget: DisruptionBudget) -> list[PodRef]:
        return [p for p in self.pods.values() if budget.selects(p.namespace, p.labels)]

    def find_pods(self, name: str, namespace: str | None = None) -> list[PodRef]:
        """Resolve a pod name (optionally namespaced) against the snapshot."""
        return sorted(
            (
                p
                for p in self.pods.values()
                if p.name == name and (namespace is None or p.namespace == namespace)
            ),
            key=lambda p: p.key,
        )
