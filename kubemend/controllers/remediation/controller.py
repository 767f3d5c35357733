"""Remediation controller - wires observer, tracker, planner and executor.

The controller serves two modes:

- one-shot requests (``kubemend node`` / ``kubemend pod``) through
  ``remediate``;
- a continuous control loop (``kubemend watch``) that reconciles on every
  state change, or every ``reconcile_interval_seconds`` at the latest, and
  turns nodes NotReady past their grace period and persistently unready pods
  into remediation requests.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from kubemend.constants.enums import PodPhase, RequestKind
from kubemend.controllers.base import BaseController
from kubemend.controllers.cluster.client import ClusterClient
from kubemend.controllers.cluster.observer import ClusterStateObserver, StateChange
from kubemend.controllers.errors import (
    APIError,
    ObserverStoppedError,
    TargetNotFoundError,
    as_fatal,
)
from kubemend.controllers.remediation.budget_tracker import DisruptionBudgetTracker
from kubemend.controllers.remediation.circuit_breaker import EvictionRateLimiter
from kubemend.controllers.remediation.executor import EvictionExecutor
from kubemend.controllers.remediation.planner import EvictionPlanner
from kubemend.models.core.pod_info import PodRef
from kubemend.models.eviction.outcome import EvictionOutcome, RemediationSummary
from kubemend.models.eviction.plan import EvictionPlanEntry, RemediationRequest
from kubemend.models.state.app_settings import RemediationSettings
from kubemend.models.state.cluster_snapshot import ClusterSnapshot

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RemediationReport:
    """Plan and outcomes of one remediation request."""

    request: RemediationRequest
    plan: list[EvictionPlanEntry]
    outcomes: list[EvictionOutcome] = field(default_factory=list)
    dry_run: bool = False

    @property
    def summary(self) -> RemediationSummary:
        return RemediationSummary.from_outcomes(self.outcomes)

    @property
    def succeeded(self) -> bool:
        return self.dry_run or self.summary.succeeded


class RemediationController(BaseController):
    """Control loop driving safe, rate-limited evictions."""

    name = "remediation"

    def __init__(
        self,
        cluster_client: ClusterClient,
        settings: RemediationSettings | None = None,
        observer: ClusterStateObserver | None = None,
        rate_limiter: EvictionRateLimiter | None = None,
        executor: EvictionExecutor | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__()
        self.settings = settings or RemediationSettings()
        self._client = cluster_client
        self._clock = clock

        self.observer = observer or ClusterStateObserver(cluster_client)
        self.tracker = DisruptionBudgetTracker(self.observer.snapshot)
        self.planner = EvictionPlanner(self.settings.protected_namespaces)
        self.rate_limiter = rate_limiter or EvictionRateLimiter.from_settings(self.settings)
        self.executor = executor or EvictionExecutor.from_settings(
            self.settings,
            cluster_client,
            self.tracker,
            self.rate_limiter,
            mark_pending_deletion=self.observer.mark_pending_deletion,
        )

        # Watch-mode bookkeeping
        self._last_remediated: dict[str, datetime] = {}
        self._first_seen_unready: dict[str, datetime] = {}
        self._stop = asyncio.Event()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def startup(self) -> None:
        """Verify the API, start the observer and wait for the initial sync.

        Raises:
            FatalError: The cluster cannot be reached or credentials are rejected.
        """
        await self._client.check_connection()
        self.observer.start().add_done_callback(self._on_observer_done)
        await self.observer.wait_synced(self.settings.initial_sync_timeout_seconds)
        logger.info("Initial cluster sync complete")

    def _on_observer_done(self, task: asyncio.Task[None]) -> None:
        # No evictions once the snapshot has stopped changing.
        if not self._stop.is_set():
            logger.error("Cluster observer stopped, halting remediation")
            self._stop.set()

    def _ensure_observer_alive(self) -> None:
        """Raise if the observer task has ended on its own.

        Raises:
            FatalError: The observer failed or stopped while still needed.
        """
        task = self.observer.task
        if task is None or not task.done():
            return
        exc = None if task.cancelled() else task.exception()
        if exc is not None:
            raise as_fatal(exc, "cluster observer stopped") from exc
        raise ObserverStoppedError("cluster observer stopped")

    def request_stop(self) -> None:
        """Ask the control loop and any running plan to wind down."""
        self._stop.set()

    async def shutdown(self) -> None:
        """Stop the control loop, letting in-flight evictions finish first."""
        self._stop.set()
        if self._task is not None and not self._task.done():
            # The executor enforces its own grace period once stop is set.
            await asyncio.wait({self._task}, timeout=self.settings.shutdown_grace_seconds + 1)
        for controller in (self, self.observer):
            result = await controller.stop()
            if result.success:
                logger.debug("Stopped %s after %.0fms", controller.name, result.duration_ms)
            else:
                logger.warning("%s stopped with error: %s", controller.name, result.error)

    # =========================================================================
    # One-shot remediation
    # =========================================================================

    def snapshot(self) -> ClusterSnapshot:
        return self.observer.snapshot()

    def resolve_pod(self, name: str, namespace: str | None = None) -> PodRef:
        """Find a pod by name in the observed state.

        Raises:
            TargetNotFoundError: No pod, or several pods in different namespaces.
        """
        matches = self.snapshot().find_pods(name, namespace)
        if not matches:
            where = f" in namespace {namespace}" if namespace else ""
            raise TargetNotFoundError(f"pod {name} not found{where}")
        if len(matches) > 1:
            namespaces = ", ".join(pod.namespace for pod in matches)
            raise TargetNotFoundError(
                f"pod name {name} is ambiguous (namespaces: {namespaces}); pass --namespace"
            )
        return matches[0]

    def require_node(self, name: str) -> None:
        snapshot = self.snapshot()
        if name not in snapshot.nodes and not snapshot.pods_on_node(name):
            raise TargetNotFoundError(f"node {name} not found")

    def plan(self, request: RemediationRequest) -> list[EvictionPlanEntry]:
        return self.planner.plan(request, self.snapshot())

    async def remediate(
        self,
        request: RemediationRequest,
        dry_run: bool | None = None,
        cancel: asyncio.Event | None = None,
    ) -> RemediationReport:
        """Plan and, unless dry-running, execute one request."""
        dry_run = self.settings.dry_run if dry_run is None else dry_run
        plan = self.plan(request)
        if dry_run:
            logger.info("[DRY-RUN] %d eviction(s) planned, nothing executed", len(plan))
            return RemediationReport(request=request, plan=plan, dry_run=True)

        if request.kind == RequestKind.NODE and self.settings.cordon_before_drain:
            await self._cordon(request.node)  # type: ignore[arg-type]

        outcomes = await self.executor.execute(plan, cancel=cancel or self._stop)
        report = RemediationReport(request=request, plan=plan, outcomes=outcomes)
        logger.info("Remediation finished (%s): %s", request.reason, report.summary.counts)
        return report

    async def _cordon(self, node_name: str) -> None:
        node = self.snapshot().nodes.get(node_name)
        if node is not None and node.unschedulable:
            logger.debug("Node %s already cordoned", node_name)
            return
        try:
            await self._client.cordon_node(node_name)
        except APIError as exc:
            logger.warning("Could not cordon node %s, draining anyway: %s", node_name, exc)

    # =========================================================================
    # Watch mode
    # =========================================================================

    def _in_cooldown(self, key: str, now: datetime) -> bool:
        last = self._last_remediated.get(key)
        cooldown = timedelta(seconds=self.settings.node_remediation_cooldown_seconds)
        return last is not None and now - last < cooldown

    def _unready_since(self, key: str, since: datetime | None, now: datetime) -> datetime:
        if since is not None:
            return since
        return self._first_seen_unready.setdefault(key, now)

    def _prune(self, snapshot: ClusterSnapshot, now: datetime) -> None:
        """Forget expired cooldowns and objects that left the cluster."""
        cooldown = timedelta(seconds=self.settings.node_remediation_cooldown_seconds)
        present = set(snapshot.pods) | {f"node:{name}" for name in snapshot.nodes}
        self._last_remediated = {
            key: when
            for key, when in self._last_remediated.items()
            if key in present and now - when < cooldown
        }
        self._first_seen_unready = {
            key: when for key, when in self._first_seen_unready.items() if key in present
        }

    def detect(
        self, snapshot: ClusterSnapshot, now: datetime | None = None
    ) -> list[RemediationRequest]:
        """Turn unhealthy nodes and pods into remediation requests."""
        now = now or self._clock()
        requests: list[RemediationRequest] = []
        node_grace = timedelta(seconds=self.settings.node_not_ready_grace_seconds)
        pod_grace = timedelta(seconds=self.settings.pod_not_ready_grace_seconds)
        self._prune(snapshot, now)

        draining: set[str] = set()
        for name in sorted(snapshot.nodes):
            node = snapshot.nodes[name]
            key = f"node:{name}"
            if node.is_ready:
                self._first_seen_unready.pop(key, None)
                continue
            since = self._unready_since(key, node.status_since, now)
            if now - since < node_grace or self._in_cooldown(key, now):
                continue
            draining.add(name)
            requests.append(
                RemediationRequest.drain_node(
                    name,
                    reason=f"node {name} {node.status.value} since {since.isoformat()}",
                )
            )

        if not self.settings.remediate_unready_pods:
            return requests

        unready: list[str] = []
        for key in sorted(snapshot.pods):
            pod = snapshot.pods[key]
            if pod.ready or pod.pending_deletion or pod.phase != PodPhase.RUNNING:
                self._first_seen_unready.pop(key, None)
                continue
            if pod.node in draining:
                continue
            since = self._unready_since(key, pod.ready_since, now)
            if now - since < pod_grace or self._in_cooldown(key, now):
                continue
            unready.append(key)
        if unready:
            requests.append(
                RemediationRequest.evict_pods(
                    unready,
                    reason=f"pods unready for more than {pod_grace.total_seconds():.0f}s",
                )
            )
        return requests

    async def reconcile(self) -> list[RemediationReport]:
        """One pass of the control loop.

        Raises:
            FatalError: The observer has stopped, so the snapshot is stale.
        """
        self._ensure_observer_alive()
        now = self._clock()
        reports = []
        for request in self.detect(self.snapshot(), now):
            logger.info("Remediating: %s", request.reason)
            if request.kind == RequestKind.NODE:
                self._last_remediated[f"node:{request.node}"] = now
            else:
                for key in request.pod_keys:
                    self._last_remediated[key] = now
            reports.append(await self.remediate(request))
            if self._stop.is_set():
                break
        return reports

    async def _wait_for_change(self, queue: asyncio.Queue[StateChange]) -> None:
        """Wait for a state change, the reconcile interval, or shutdown."""
        getter = asyncio.ensure_future(queue.get())
        stopper = asyncio.ensure_future(self._stop.wait())
        try:
            await asyncio.wait(
                {getter, stopper},
                timeout=self.settings.reconcile_interval_seconds,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            getter.cancel()
            stopper.cancel()
        while not queue.empty():
            queue.get_nowait()

    async def _run(self) -> None:
        queue = self.observer.subscribe()
        try:
            while not self._stop.is_set():
                await self.reconcile()
                await self._wait_for_change(queue)
            self._ensure_observer_alive()
        finally:
            self.observer.unsubscribe(queue)


__all__ = ["RemediationController", "RemediationReport"]
