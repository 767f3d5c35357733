"""Shared fixtures for kubemend unit tests."""

from __future__ import annotations

import random

import pytest
import pytest_asyncio

from kubemend.controllers.cluster.observer import ClusterStateObserver
from kubemend.controllers.remediation.budget_tracker import DisruptionBudgetTracker
from kubemend.controllers.remediation.circuit_breaker import EvictionRateLimiter
from kubemend.controllers.remediation.executor import EvictionExecutor
from kubemend.tests.unit.fakes import (
    FakeClusterClient,
    RecordingSleep,
    node_dict,
    pdb_dict,
    pod_dict,
)


@pytest.fixture
def fake_client() -> FakeClusterClient:
    """Node n1 running p1..p3, all healthy, under one PDB with minAvailable=2."""
    return FakeClusterClient(
        pods=[pod_dict(f"p{i}", restarts=i) for i in (1, 2, 3)],
        nodes=[node_dict("n1"), node_dict("n2")],
        pdbs=[pdb_dict("web-pdb", min_available=2)],
    )


@pytest_asyncio.fixture
async def synced_observer(fake_client: FakeClusterClient) -> ClusterStateObserver:
    observer = ClusterStateObserver(fake_client)
    for kind in ClusterStateObserver.KINDS:
        await observer.relist(kind)
    return observer


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fast_limiter() -> EvictionRateLimiter:
    """Limiter that never throttles and never opens during a test."""
    return EvictionRateLimiter(
        evictions_per_second=10_000,
        burst=1_000,
        failure_ratio_threshold=1.0,
        min_samples=1_000,
    )


@pytest.fixture
def make_executor(fake_client, synced_observer, fast_limiter, recording_sleep):
    """Factory building an executor wired to the synced observer."""

    def _make(**kwargs) -> EvictionExecutor:
        options = {
            "max_concurrency": 4,
            "max_attempts": 3,
            "max_budget_requeues": 1,
            "budget_requeue_delay_seconds": 0.0,
            "shutdown_grace_seconds": 0.1,
            "sleep": recording_sleep,
            "rng": random.Random(7),
        }
        options.update(kwargs)
        return EvictionExecutor(
            fake_client,
            DisruptionBudgetTracker(synced_observer.snapshot),
            options.pop("rate_limiter", fast_limiter),
            mark_pending_deletion=synced_observer.mark_pending_deletion,
            **options,
        )

    return _make
