"""Pod parser for the cluster observer - parses pod objects into PodRef."""

from __future__ import annotations

from typing import Any

from kubemend.constants.enums import PodPhase
from kubemend.constants.values import MIRROR_POD_ANNOTATION
from kubemend.controllers.cluster.parsers.common import (
    coerce_int,
    find_condition,
    parse_iso_timestamp,
)
from kubemend.models.core.pod_info import OwnerRef, PodRef


class PodParser:
    """Parses pod data into PodRef snapshots."""

    @staticmethod
    def _controller_owner(metadata: dict[str, Any]) -> OwnerRef | None:
        """Pick the controlling owner reference, falling back to the first one."""
        owners = [o for o in metadata.get("ownerReferences") or [] if isinstance(o, dict)]
        if not owners:
            return None
        owner = next((o for o in owners if o.get("controller")), owners[0])
        return OwnerRef(kind=str(owner.get("kind", "Unknown")), name=str(owner.get("name", "")))

    @staticmethod
    def _parse_phase(raw: Any) -> PodPhase:
        try:
            return PodPhase(raw)
        except ValueError:
            return PodPhase.UNKNOWN

    @staticmethod
    def _restart_count(status: dict[str, Any]) -> int:
        total = 0
        for container in status.get("containerStatuses") or []:
            if isinstance(container, dict):
                total += coerce_int(container.get("restartCount"), 0)
        return total

    def parse_pod(self, pod: dict[str, Any]) -> PodRef:
        """Parse a single pod into PodRef.

        Args:
            pod: Raw pod dictionary from API

        Returns:
            PodRef object.
        """
        metadata = pod.get("metadata") or {}
        spec = pod.get("spec") or {}
        status = pod.get("status") or {}
        labels = metadata.get("labels") or {}
        annotations = metadata.get("annotations") or {}

        ready_condition = find_condition(status, "Ready")
        ready = ready_condition is not None and ready_condition.get("status") == "True"

        return PodRef(
            namespace=metadata.get("namespace", "default"),
            name=metadata.get("name", "Unknown"),
            node=spec.get("nodeName") or None,
            owner=self._controller_owner(metadata),
            ready=ready,
            phase=self._parse_phase(status.get("phase")),
            labels={str(k): str(v) for k, v in labels.items()},
            restart_count=self._restart_count(status),
            created_at=parse_iso_timestamp(metadata.get("creationTimestamp")),
            ready_since=(
                parse_iso_timestamp(ready_condition.get("lastTransitionTime"))
                if ready_condition
                else None
            ),
            pending_deletion=bool(metadata.get("deletionTimestamp")),
            mirror=MIRROR_POD_ANNOTATION in annotations,
        )
