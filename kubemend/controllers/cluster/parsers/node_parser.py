"""Node parser for the cluster observer - parses node objects into NodeRef."""

from __future__ import annotations

from typing import Any

from kubemend.constants.enums import NodeStatus
from kubemend.controllers.cluster.parsers.common import (
    find_condition,
    parse_iso_timestamp,
)
from kubemend.models.core.node_info import NodeRef


class NodeParser:
    """Parses node data into NodeRef snapshots."""

    _READY_STATUS = {
        "True": NodeStatus.READY,
        "False": NodeStatus.NOT_READY,
    }

    def parse_node(self, node: dict[str, Any]) -> NodeRef:
        """Parse a single node into NodeRef.

        Args:
            node: Raw node dictionary from API

        Returns:
            NodeRef object without attached pods.
        """
        metadata = node.get("metadata") or {}
        spec = node.get("spec") or {}
        status = node.get("status") or {}

        ready = find_condition(status, "Ready")
        if ready is None:
            node_status = NodeStatus.UNKNOWN
            since = None
        else:
            node_status = self._READY_STATUS.get(str(ready.get("status")), NodeStatus.UNKNOWN)
            since = parse_iso_timestamp(ready.get("lastTransitionTime"))

        return NodeRef(
            name=metadata.get("name", "Unknown"),
            status=node_status,
            status_since=since,
            unschedulable=bool(spec.get("unschedulable", False)),
        )
