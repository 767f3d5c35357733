"""In-memory cluster fakes and API-shaped object builders for unit tests."""

from __future__ import annotations

import asyncio
from collections import defaultdict, deque
from collections.abc import AsyncIterator, Iterable
from typing import Any

from kubemend.constants.enums import ChangeType, ResourceKind
from kubemend.controllers.cluster.client import ClusterClient, WatchEvent
from kubemend.controllers.cluster.parsers import PodParser
from kubemend.models.core.pod_info import PodRef

CREATED = "2024-01-01T00:00:00Z"


# =============================================================================
# API-shaped dictionaries
# =============================================================================


def pod_dict(
    name: str,
    namespace: str = "default",
    node: str | None = "n1",
    labels: dict[str, str] | None = None,
    ready: bool = True,
    phase: str = "Running",
    restarts: int = 0,
    owner: tuple[str, str] | None = ("ReplicaSet", "web-7d9f"),
    created: str = CREATED,
    ready_since: str = CREATED,
    deleting: bool = False,
    annotations: dict[str, str] | None = None,
    resource_version: str = "1",
) -> dict[str, Any]:
    metadata: dict[str, Any] = {
        "name": name,
        "namespace": namespace,
        "labels": labels if labels is not None else {"app": "web"},
        "creationTimestamp": created,
        "resourceVersion": resource_version,
    }
    if owner is not None:
        metadata["ownerReferences"] = [
            {"kind": owner[0], "name": owner[1], "controller": True}
        ]
    if deleting:
        metadata["deletionTimestamp"] = "2024-01-02T00:00:00Z"
    if annotations:
        metadata["annotations"] = annotations
    return {
        "metadata": metadata,
        "spec": {"nodeName": node} if node else {},
        "status": {
            "phase": phase,
            "conditions": [
                {
                    "type": "Ready",
                    "status": "True" if ready else "False",
                    "lastTransitionTime": ready_since,
                }
            ],
            "containerStatuses": [{"name": "main", "restartCount": restarts}],
        },
    }


def node_dict(
    name: str,
    ready: str = "True",
    since: str = CREATED,
    unschedulable: bool = False,
) -> dict[str, Any]:
    return {
        "metadata": {"name": name, "resourceVersion": "1"},
        "spec": {"unschedulable": True} if unschedulable else {},
        "status": {
            "conditions": [
                {"type": "Ready", "status": ready, "lastTransitionTime": since},
            ],
        },
    }


def pdb_dict(
    name: str,
    namespace: str = "default",
    match_labels: dict[str, str] | None = None,
    min_available: int | str | None = None,
    max_unavailable: int | str | None = None,
) -> dict[str, Any]:
    spec: dict[str, Any] = {
        "selector": {"matchLabels": match_labels if match_labels is not None else {"app": "web"}},
    }
    if min_available is not None:
        spec["minAvailable"] = min_available
    if max_unavailable is not None:
        spec["maxUnavailable"] = max_unavailable
    return {
        "metadata": {"name": name, "namespace": namespace, "resourceVersion": "1"},
        "spec": spec,
    }


def make_pod(name: str, **kwargs: Any) -> PodRef:
    """PodRef built through the real parser."""
    return PodParser().parse_pod(pod_dict(name, **kwargs))


def watch_event(
    kind: ResourceKind, change: ChangeType, obj: dict[str, Any]
) -> WatchEvent:
    return WatchEvent(type=change, kind=kind, object=obj)


# =============================================================================
# Cluster client
# =============================================================================


class FakeClusterClient(ClusterClient):
    """Scriptable in-memory ``ClusterClient``.

    - ``objects`` holds what the next list returns, per kind.
    - ``watch_scripts`` queues one script per watch call; a script is a list of
      ``WatchEvent`` values, exceptions, and ``asyncio.Event`` gates the stream
      waits on. A finished script ends the stream cleanly; without a queued
      script the stream idles until cancelled.
    - ``evict_errors`` queues exceptions raised by successive evictions of a pod.
    """

    def __init__(
        self,
        pods: Iterable[dict[str, Any]] = (),
        nodes: Iterable[dict[str, Any]] = (),
        pdbs: Iterable[dict[str, Any]] = (),
    ) -> None:
        self.objects: dict[ResourceKind, list[dict[str, Any]]] = {
            ResourceKind.PODS: list(pods),
            ResourceKind.NODES: list(nodes),
            ResourceKind.PDBS: list(pdbs),
        }
        self.resource_version = 100
        self.connection_error: Exception | None = None
        self.list_errors: dict[ResourceKind, deque[Exception]] = defaultdict(deque)
        self.list_calls: dict[ResourceKind, int] = defaultdict(int)
        self.watch_scripts: dict[ResourceKind, deque[list[Any]]] = defaultdict(deque)
        self.watch_calls: list[tuple[ResourceKind, str | None]] = []
        self.evict_errors: dict[str, deque[Exception]] = defaultdict(deque)
        self.evict_calls: list[str] = []
        self.evicted: list[str] = []
        self.cordoned: list[str] = []
        self.cordon_error: Exception | None = None
        self.evict_delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0

    async def check_connection(self) -> None:
        if self.connection_error is not None:
            raise self.connection_error

    async def list_objects(
        self, kind: ResourceKind
    ) -> tuple[list[dict[str, Any]], str | None]:
        self.list_calls[kind] += 1
        if self.list_errors[kind]:
            raise self.list_errors[kind].popleft()
        self.resource_version += 1
        return [dict(item) for item in self.objects[kind]], str(self.resource_version)

    async def watch(
        self, kind: ResourceKind, resource_version: str | None
    ) -> AsyncIterator[WatchEvent]:
        self.watch_calls.append((kind, resource_version))
        if not self.watch_scripts[kind]:
            await asyncio.Event().wait()
            return
        for item in self.watch_scripts[kind].popleft():
            if isinstance(item, asyncio.Event):
                await item.wait()
            elif isinstance(item, BaseException):
                raise item
            else:
                yield item

    async def evict_pod(self, namespace: str, name: str) -> None:
        key = f"{namespace}/{name}"
        self.evict_calls.append(key)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.evict_delay:
                await asyncio.sleep(self.evict_delay)
        finally:
            self.in_flight -= 1
        if self.evict_errors[key]:
            raise self.evict_errors[key].popleft()
        self.evicted.append(key)

    async def cordon_node(self, name: str) -> None:
        if self.cordon_error is not None:
            raise self.cordon_error
        self.cordoned.append(name)


class RecordingSleep:
    """Stop-aware sleep that returns immediately and records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float, stop: asyncio.Event | None = None) -> bool:
        self.delays.append(delay)
        await asyncio.sleep(0)
        return stop is not None and stop.is_set()


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
