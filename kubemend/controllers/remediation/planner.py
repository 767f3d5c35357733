"""Eviction planner - turns a remediation request into an ordered plan.

Candidates are grouped by governing disruption budget, sorted least healthy
first inside each group, then interleaved round-robin across groups so one
large group cannot starve the others. The planner never evicts anything and
its output depends only on the request and the snapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from itertools import zip_longest

from kubemend.constants.defaults import PROTECTED_NAMESPACES_DEFAULT
from kubemend.constants.enums import RequestKind
from kubemend.models.core.pod_info import PodRef
from kubemend.models.eviction.plan import EvictionPlanEntry, RemediationRequest
from kubemend.models.state.cluster_snapshot import ClusterSnapshot

logger = logging.getLogger(__name__)

_NO_TIMESTAMP = datetime.max.replace(tzinfo=timezone.utc)


def health_key(pod: PodRef) -> tuple[bool, int, datetime, str]:
    """Sort key, least healthy first: unready, most restarts, oldest, then key."""
    return (pod.ready, -pod.restart_count, pod.created_at or _NO_TIMESTAMP, pod.key)


class EvictionPlanner:
    """Builds deterministic eviction plans from cluster snapshots."""

    def __init__(self, protected_namespaces: Iterable[str] = PROTECTED_NAMESPACES_DEFAULT) -> None:
        self._protected_namespaces = frozenset(protected_namespaces)

    @staticmethod
    def group_key(pod: PodRef, snapshot: ClusterSnapshot) -> str:
        """Budget group of a pod.

        Pods under a budget share the group of their first governing budget.
        The API server refuses to evict pods matched by more than one budget,
        so those entries end up denied rather than racing across lanes.
        Unbudgeted pods are grouped by owning workload.
        """
        budgets = snapshot.budgets_for(pod)
        if budgets:
            return f"pdb:{budgets[0].key}"
        return pod.workload

    def _skip_reason(self, pod: PodRef) -> str | None:
        if pod.pending_deletion:
            return "already terminating"
        if pod.is_terminal:
            return f"phase {pod.phase.value}"
        if pod.is_daemonset:
            return "managed by a DaemonSet"
        if pod.mirror:
            return "static mirror pod"
        if pod.namespace in self._protected_namespaces:
            return f"namespace {pod.namespace} is protected"
        return None

    def select_candidates(
        self, request: RemediationRequest, snapshot: ClusterSnapshot
    ) -> list[PodRef]:
        """Pods the request targets, minus the ones that must not be evicted."""
        if request.kind == RequestKind.NODE and request.node is not None:
            targeted = snapshot.pods_on_node(request.node)
            if request.node not in snapshot.nodes:
                logger.warning("Node %s is not in the current snapshot", request.node)
        else:
            targeted = []
            for key in request.pod_keys:
                pod = snapshot.pods.get(key)
                if pod is None:
                    logger.warning("Pod %s is not in the current snapshot, skipping", key)
                    continue
                targeted.append(pod)

        candidates: list[PodRef] = []
        for pod in targeted:
            reason = self._skip_reason(pod)
            if reason is not None:
                logger.info("Skipping %s: %s", pod.key, reason)
                continue
            candidates.append(pod)
        return candidates

    def plan(
        self, request: RemediationRequest, snapshot: ClusterSnapshot
    ) -> list[EvictionPlanEntry]:
        """Produce the ordered eviction plan for ``request``."""
        groups: dict[str, list[PodRef]] = {}
        for pod in self.select_candidates(request, snapshot):
            groups.setdefault(self.group_key(pod, snapshot), []).append(pod)
        for pods in groups.values():
            pods.sort(key=health_key)

        # Groups holding the least healthy pods go first in every round.
        ordered = sorted(groups.items(), key=lambda item: (health_key(item[1][0]), item[0]))

        interleaved: list[tuple[str, PodRef]] = []
        for round_ in zip_longest(*([(group, pod) for pod in pods] for group, pods in ordered)):
            interleaved.extend(item for item in round_ if item is not None)

        total = len(interleaved)
        plan = [
            EvictionPlanEntry(pod=pod, reason=request.reason, priority=total - index, group=group)
            for index, (group, pod) in enumerate(interleaved)
        ]
        logger.info(
            "Planned %d eviction(s) across %d budget group(s) for: %s",
            total,
            len(groups),
            request.reason,
        )
        return plan


__all__ = ["EvictionPlanner", "health_key"]
