"""Cluster state observer - list/watch view of pods, nodes and PDBs.

For each resource kind the observer runs a list-then-watch sequence. The
sequence is an async iterator of ``StateChange`` values with two phases: a
full list that *replaces* the in-memory map for the kind, then a watch from
the list's resource version. When the watch expires (410) or fails, the
iterator goes back to the list phase. A watch the server closes cleanly is
resumed from the last seen resource version.

Single-writer discipline: only the observer task and ``mark_pending_deletion``
mutate the maps, both on the event loop thread and without awaiting
mid-mutation, so ``snapshot()`` always sees a consistent state.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass

from kubemend.constants.enums import ChangeType, ResourceKind
from kubemend.constants.timeouts import (
    RESYNC_BACKOFF_MAX_SECONDS,
    RESYNC_BACKOFF_SECONDS,
)
from kubemend.controllers.base import BaseController
from kubemend.controllers.cluster.client import ClusterClient, WatchEvent
from kubemend.controllers.cluster.parsers import NodeParser, PDBParser, PodParser
from kubemend.controllers.errors import (
    ClusterUnreachableError,
    TransientAPIError,
    WatchStreamExpired,
    as_fatal,
)
from kubemend.models.core.node_info import NodeRef
from kubemend.models.core.pod_info import PodRef, pod_key
from kubemend.models.pdb.pdb_info import DisruptionBudget
from kubemend.models.state.cluster_snapshot import ClusterSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StateChange:
    """Notification that the observed state changed."""

    kind: ResourceKind
    type: ChangeType
    key: str | None = None  # None for a full resync


class ClusterStateObserver(BaseController):
    """Keeps a consistent in-memory view of the cluster."""

    name = "observer"
    KINDS = (ResourceKind.PODS, ResourceKind.NODES, ResourceKind.PDBS)

    def __init__(
        self,
        cluster_client: ClusterClient,
        resync_backoff_seconds: float = RESYNC_BACKOFF_SECONDS,
        resync_backoff_max_seconds: float = RESYNC_BACKOFF_MAX_SECONDS,
    ) -> None:
        super().__init__()
        self._client = cluster_client
        self._resync_backoff = resync_backoff_seconds
        self._resync_backoff_max = resync_backoff_max_seconds

        self._pods: dict[str, PodRef] = {}
        self._nodes: dict[str, NodeRef] = {}
        self._budgets: dict[str, DisruptionBudget] = {}
        self._pending_deletion: set[str] = set()
        self._resource_versions: dict[ResourceKind, str | None] = {}
        self._synced: dict[ResourceKind, asyncio.Event] = {
            kind: asyncio.Event() for kind in self.KINDS
        }
        self._subscribers: list[asyncio.Queue[StateChange]] = []
        self.resync_counts: dict[ResourceKind, int] = {kind: 0 for kind in self.KINDS}

        self._pod_parser = PodParser()
        self._node_parser = NodeParser()
        self._pdb_parser = PDBParser()

    # =========================================================================
    # Public API
    # =========================================================================

    def snapshot(self) -> ClusterSnapshot:
        """Return a point-in-time consistent copy of pods, nodes and budgets."""
        pods = {
            key: (
                pod.model_copy(update={"pending_deletion": True})
                if key in self._pending_deletion and not pod.pending_deletion
                else pod
            )
            for key, pod in self._pods.items()
        }
        return ClusterSnapshot.build(pods, self._nodes, self._budgets)

    def mark_pending_deletion(self, pod: PodRef) -> None:
        """Optimistically mark an evicted pod ahead of the watch event."""
        if pod.key not in self._pods:
            return
        self._pending_deletion.add(pod.key)
        self._emit(StateChange(ResourceKind.PODS, ChangeType.MODIFIED, pod.key))

    @property
    def synced(self) -> bool:
        return all(event.is_set() for event in self._synced.values())

    async def wait_synced(self, timeout: float | None = None) -> None:
        """Wait until every kind has been listed at least once.

        Raises:
            FatalError: Timed out, or the observer task stopped. A 401/403 from
                the initial list is a ``FatalAuthError``.
        """
        waiter = asyncio.ensure_future(
            asyncio.gather(*(event.wait() for event in self._synced.values()))
        )
        waits: set[asyncio.Future] = {waiter}
        if self._task is not None:
            waits.add(self._task)
        try:
            done, _ = await asyncio.wait(
                waits, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            if not waiter.done():
                waiter.cancel()

        if waiter in done:
            return
        task = self._task
        if task is not None and task in done:
            exc = None if task.cancelled() else task.exception()
            if exc is not None:
                raise as_fatal(exc, "initial cluster sync failed") from exc
            raise ClusterUnreachableError("observer stopped before the initial sync")
        raise ClusterUnreachableError(f"initial cluster sync timed out after {timeout}s")

    def subscribe(self) -> asyncio.Queue[StateChange]:
        """Register a queue receiving every subsequent ``StateChange``."""
        queue: asyncio.Queue[StateChange] = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[StateChange]) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    # =========================================================================
    # List / watch
    # =========================================================================

    async def relist(self, kind: ResourceKind) -> None:
        """Full list of one kind, replacing its map wholesale."""
        items, resource_version = await self._client.list_objects(kind)

        if kind == ResourceKind.PODS:
            pods = {}
            for item in items:
                pod = self._pod_parser.parse_pod(item)
                pods[pod.key] = pod
            self._pods = pods
            self._pending_deletion &= set(pods)
        elif kind == ResourceKind.NODES:
            nodes = {}
            for item in items:
                node = self._node_parser.parse_node(item)
                nodes[node.name] = node
            self._nodes = nodes
        else:
            budgets = {}
            for item in items:
                budget = self._pdb_parser.parse_pdb(item)
                budgets[budget.key] = budget
            self._budgets = budgets

        self._resource_versions[kind] = resource_version
        self.resync_counts[kind] += 1
        self._synced[kind].set()
        logger.info(
            "Resynced %d %s (resourceVersion=%s)", len(items), kind.value, resource_version
        )

    def _backoff(self, failures: int) -> float:
        return min(self._resync_backoff * (2 ** max(0, failures - 1)), self._resync_backoff_max)

    async def changes(self, kind: ResourceKind) -> AsyncIterator[StateChange]:
        """Restartable sequence of state changes for one kind."""
        needs_list = True
        failures = 0
        while True:
            if needs_list:
                try:
                    await self.relist(kind)
                except TransientAPIError as exc:
                    failures += 1
                    delay = self._backoff(failures)
                    logger.warning(
                        "List of %s failed (%s), retrying in %.1fs", kind.value, exc, delay
                    )
                    await asyncio.sleep(delay)
                    continue
                failures = 0
                needs_list = False
                yield StateChange(kind, ChangeType.RESYNCED)

            try:
                async for event in self._client.watch(kind, self._resource_versions.get(kind)):
                    change = self._apply(event)
                    if change is not None:
                        yield change
            except WatchStreamExpired:
                logger.info("Watch on %s expired, performing full resync", kind.value)
                needs_list = True
            except TransientAPIError as exc:
                logger.warning("Watch on %s failed (%s), performing full resync", kind.value, exc)
                needs_list = True
            else:
                logger.debug("Watch on %s closed by server, resuming", kind.value)

    def _apply(self, event: WatchEvent) -> StateChange | None:
        """Reconcile one watch event into the in-memory maps."""
        kind = event.kind
        if event.resource_version:
            self._resource_versions[kind] = event.resource_version
        if event.type == ChangeType.BOOKMARK:
            return None

        deleted = event.type == ChangeType.DELETED
        if kind == ResourceKind.PODS:
            pod = self._pod_parser.parse_pod(event.object)
            key = pod.key
            if deleted:
                self._pods.pop(key, None)
                self._pending_deletion.discard(key)
            else:
                self._pods[key] = pod
        elif kind == ResourceKind.NODES:
            node = self._node_parser.parse_node(event.object)
            key = node.name
            if deleted:
                self._nodes.pop(key, None)
            else:
                self._nodes[key] = node
        else:
            budget = self._pdb_parser.parse_pdb(event.object)
            key = pod_key(budget.namespace, budget.name)
            if deleted:
                self._budgets.pop(key, None)
            else:
                self._budgets[key] = budget

        return StateChange(kind, event.type, key)

    # =========================================================================
    # Background task
    # =========================================================================

    def _emit(self, change: StateChange) -> None:
        for queue in self._subscribers:
            queue.put_nowait(change)

    async def _consume(self, kind: ResourceKind) -> None:
        async for change in self.changes(kind):
            self._emit(change)

    async def _run(self) -> None:
        # The first kind to fail takes the others down with it.
        tasks = [asyncio.create_task(self._consume(kind)) for kind in self.KINDS]
        try:
            await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)


__all__ = ["ClusterStateObserver", "StateChange"]
