"""Eviction executor - issues the evictions of a plan.

Plan entries are split into lanes, one per budget group, each processed in
plan order by a single worker. At most ``max_concurrency`` lanes hold a
worker slot at once. For every entry the worker:

1. waits for a rate limiter / circuit breaker permit,
2. re-checks ``allowed_disruptions`` immediately before the API call,
3. calls the eviction subresource and classifies the result.

Entries denied by their budget are requeued for the lane's next pass, which
starts after ``budget_requeue_delay_seconds``; the slot is released while
the lane waits. Transient API errors are retried with exponential backoff
and full jitter. A 429 never retries sooner than its Retry-After.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from kubemend.constants.defaults import (
    BACKOFF_BASE_SECONDS_DEFAULT,
    BACKOFF_MAX_SECONDS_DEFAULT,
    BUDGET_REQUEUE_DELAY_SECONDS_DEFAULT,
    MAX_ATTEMPTS_DEFAULT,
    MAX_BUDGET_REQUEUES_DEFAULT,
    MAX_CONCURRENCY_DEFAULT,
)
from kubemend.constants.enums import EvictionResult
from kubemend.constants.timeouts import SHUTDOWN_GRACE_SECONDS
from kubemend.controllers.cluster.client import ClusterClient
from kubemend.controllers.errors import (
    BudgetExhausted,
    PermanentAPIError,
    TransientAPIError,
)
from kubemend.controllers.remediation.budget_tracker import DisruptionBudgetTracker
from kubemend.controllers.remediation.circuit_breaker import EvictionRateLimiter
from kubemend.models.core.pod_info import PodRef
from kubemend.models.eviction.outcome import EvictionOutcome
from kubemend.models.eviction.plan import EvictionPlanEntry
from kubemend.models.state.app_settings import RemediationSettings
from kubemend.utils.async_utils import StopAwareSleep, interruptible_sleep

logger = logging.getLogger(__name__)


@dataclass
class _LaneItem:
    entry: EvictionPlanEntry
    budget_requeues: int = 0


class EvictionExecutor:
    """Executes eviction plans with bounded concurrency."""

    def __init__(
        self,
        cluster_client: ClusterClient,
        tracker: DisruptionBudgetTracker,
        rate_limiter: EvictionRateLimiter,
        mark_pending_deletion: Callable[[PodRef], None] | None = None,
        max_concurrency: int = MAX_CONCURRENCY_DEFAULT,
        max_attempts: int = MAX_ATTEMPTS_DEFAULT,
        max_budget_requeues: int = MAX_BUDGET_REQUEUES_DEFAULT,
        backoff_base_seconds: float = BACKOFF_BASE_SECONDS_DEFAULT,
        backoff_max_seconds: float = BACKOFF_MAX_SECONDS_DEFAULT,
        budget_requeue_delay_seconds: float = BUDGET_REQUEUE_DELAY_SECONDS_DEFAULT,
        shutdown_grace_seconds: float = SHUTDOWN_GRACE_SECONDS,
        sleep: StopAwareSleep = interruptible_sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._client = cluster_client
        self._tracker = tracker
        self._limiter = rate_limiter
        self._mark_pending_deletion = mark_pending_deletion
        self._max_concurrency = max(1, max_concurrency)
        self._max_attempts = max(1, max_attempts)
        self._max_budget_requeues = max_budget_requeues
        self._backoff_base = backoff_base_seconds
        self._backoff_max = backoff_max_seconds
        self._budget_requeue_delay = budget_requeue_delay_seconds
        self._shutdown_grace = shutdown_grace_seconds
        self._sleep = sleep
        self._rng = rng or random.Random()

    @classmethod
    def from_settings(
        cls,
        settings: RemediationSettings,
        cluster_client: ClusterClient,
        tracker: DisruptionBudgetTracker,
        rate_limiter: EvictionRateLimiter,
        mark_pending_deletion: Callable[[PodRef], None] | None = None,
        **kwargs: object,
    ) -> EvictionExecutor:
        return cls(
            cluster_client,
            tracker,
            rate_limiter,
            mark_pending_deletion=mark_pending_deletion,
            max_concurrency=settings.max_concurrency,
            max_attempts=settings.max_attempts,
            max_budget_requeues=settings.max_budget_requeues,
            backoff_base_seconds=settings.backoff_base_seconds,
            backoff_max_seconds=settings.backoff_max_seconds,
            budget_requeue_delay_seconds=settings.budget_requeue_delay_seconds,
            shutdown_grace_seconds=settings.shutdown_grace_seconds,
            **kwargs,  # type: ignore[arg-type]
        )

    # =========================================================================
    # Public API
    # =========================================================================

    async def execute(
        self,
        plan: list[EvictionPlanEntry],
        cancel: asyncio.Event | None = None,
    ) -> list[EvictionOutcome]:
        """Run ``plan`` to completion or until ``cancel`` is set.

        Returns:
            Every recorded outcome in recording order. The last outcome per
            pod is final; entries left unfinished by a cancellation are
            reported Abandoned.
        """
        outcomes: list[EvictionOutcome] = []
        if not plan:
            return outcomes
        stop = cancel if cancel is not None else asyncio.Event()

        lanes: dict[str, deque[_LaneItem]] = {}
        for entry in sorted(plan, key=lambda e: -e.priority):
            lanes.setdefault(entry.group, deque()).append(_LaneItem(entry))
        logger.info(
            "Executing %d eviction(s) in %d lane(s), max concurrency %d",
            len(plan),
            len(lanes),
            self._max_concurrency,
        )

        semaphore = asyncio.Semaphore(self._max_concurrency)
        tasks = [
            asyncio.create_task(
                self._run_lane(group, lane, semaphore, stop, outcomes),
                name=f"kubemend-lane-{group}",
            )
            for group, lane in lanes.items()
        ]
        try:
            await self._wait_for_lanes(tasks, stop)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        for task in tasks:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()  # type: ignore[misc]

        finished = {outcome.pod.key for outcome in outcomes if outcome.is_final}
        for entry in plan:
            if entry.pod.key not in finished:
                self._record(
                    outcomes,
                    entry.pod,
                    EvictionResult.ABANDONED,
                    detail="cancelled before completion",
                )
                finished.add(entry.pod.key)
        return outcomes

    # =========================================================================
    # Lanes
    # =========================================================================

    async def _wait_for_lanes(self, tasks: list[asyncio.Task[None]], stop: asyncio.Event) -> None:
        stopper = asyncio.create_task(stop.wait())
        waiting: set[asyncio.Task] = set(tasks)
        try:
            while waiting:
                done, _ = await asyncio.wait(
                    waiting | {stopper}, return_when=asyncio.FIRST_COMPLETED
                )
                waiting -= done
                if stopper in done:
                    break
        finally:
            stopper.cancel()

        if not waiting:
            return
        logger.warning(
            "Cancellation requested, giving %d lane(s) %.1fs to finish in-flight calls",
            len(waiting),
            self._shutdown_grace,
        )
        _, still_running = await asyncio.wait(waiting, timeout=self._shutdown_grace)
        for task in still_running:
            task.cancel()

    async def _run_lane(
        self,
        group: str,
        lane: deque[_LaneItem],
        semaphore: asyncio.Semaphore,
        stop: asyncio.Event,
        outcomes: list[EvictionOutcome],
    ) -> None:
        while lane and not stop.is_set():
            deferred: list[_LaneItem] = []
            async with semaphore:
                while lane and not stop.is_set():
                    item = lane.popleft()
                    if await self._process(item, stop, outcomes):
                        deferred.append(item)
            if not deferred:
                return
            if stop.is_set():
                lane.extend(deferred)
                return
            logger.info(
                "%d entr%s in %s waiting on the disruption budget, next pass in %.1fs",
                len(deferred),
                "y" if len(deferred) == 1 else "ies",
                group,
                self._budget_requeue_delay,
            )
            lane.extend(deferred)
            if await self._sleep(self._budget_requeue_delay, stop):
                return

    # =========================================================================
    # Entries
    # =========================================================================

    def _check_budget(self, pod: PodRef) -> None:
        allowed = self._tracker.allowed_disruptions([pod])
        if allowed <= 0:
            raise BudgetExhausted(pod.key, allowed)

    def _retry_delay(self, attempt: int, retry_after: float | None) -> float:
        """Exponential backoff with full jitter, never shorter than ``retry_after``."""
        ceiling = min(self._backoff_max, self._backoff_base * (2 ** (attempt - 1)))
        delay = self._rng.uniform(0, ceiling)
        if retry_after is not None:
            delay = max(delay, retry_after)
        return delay

    async def _process(
        self,
        item: _LaneItem,
        stop: asyncio.Event,
        outcomes: list[EvictionOutcome],
    ) -> bool:
        """Drive one entry until it is final, requeued or stopped.

        Returns:
            True if the entry must be requeued for the lane's next pass.
        """
        pod = item.entry.pod
        attempt = 0
        while True:
            attempt += 1
            permit = await self._limiter.acquire(stop)
            if permit is None:
                return False

            try:
                self._check_budget(pod)
            except BudgetExhausted as exc:
                self._limiter.release(permit)
                item.budget_requeues += 1
                if item.budget_requeues > self._max_budget_requeues:
                    self._record(
                        outcomes,
                        pod,
                        EvictionResult.ABANDONED,
                        attempt,
                        f"{exc}; gave up after {self._max_budget_requeues} requeue(s)",
                    )
                    return False
                self._record(outcomes, pod, EvictionResult.DENIED_BUDGET, attempt, str(exc))
                return True

            try:
                await self._client.evict_pod(pod.namespace, pod.name)
            except TransientAPIError as exc:
                if exc.too_many_requests:
                    self._limiter.release(permit)
                else:
                    self._limiter.record_failure(permit)
                if attempt >= self._max_attempts:
                    self._record(
                        outcomes,
                        pod,
                        EvictionResult.ABANDONED,
                        attempt,
                        f"giving up after {attempt} attempt(s): {exc}",
                        exc.status,
                    )
                    return False
                delay = self._retry_delay(attempt, exc.retry_after)
                self._record(
                    outcomes,
                    pod,
                    EvictionResult.RETRYING,
                    attempt,
                    f"{exc}; retrying in {delay:.1f}s",
                    exc.status,
                )
                if await self._sleep(delay, stop):
                    return False
                continue
            except PermanentAPIError as exc:
                if exc.not_found:
                    self._limiter.release(permit)
                else:
                    self._limiter.record_failure(permit)
                self._record(
                    outcomes,
                    pod,
                    EvictionResult.DENIED_API_ERROR,
                    attempt,
                    "pod already gone" if exc.not_found else str(exc),
                    exc.status,
                )
                return False
            except asyncio.CancelledError:
                self._limiter.release(permit)
                raise

            self._limiter.record_success(permit)
            if self._mark_pending_deletion is not None:
                self._mark_pending_deletion(pod)
            self._record(outcomes, pod, EvictionResult.EVICTED, attempt, item.entry.reason)
            return False

    def _record(
        self,
        outcomes: list[EvictionOutcome],
        pod: PodRef,
        result: EvictionResult,
        attempt: int = 1,
        detail: str = "",
        status_code: int | None = None,
    ) -> None:
        outcome = EvictionOutcome(
            pod=pod,
            result=result,
            attempt=attempt,
            detail=detail,
            status_code=status_code,
        )
        outcomes.append(outcome)
        level = logging.WARNING if outcome.is_failure else logging.INFO
        logger.log(level, "%s %s (attempt %d): %s", result.value, pod.key, attempt, detail)


__all__ = ["EvictionExecutor"]
