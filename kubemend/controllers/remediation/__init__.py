"""Remediation controllers: budget tracking, planning, execution and throttling."""

from kubemend.controllers.remediation.budget_tracker import (
    DisruptionBudgetTracker,
    evaluate_budget,
)
from kubemend.controllers.remediation.circuit_breaker import (
    BreakerStatus,
    EvictionRateLimiter,
    TokenBucket,
)
from kubemend.controllers.remediation.controller import (
    RemediationController,
    RemediationReport,
)
from kubemend.controllers.remediation.executor import EvictionExecutor
from kubemend.controllers.remediation.planner import EvictionPlanner, health_key

__all__ = [
    "BreakerStatus",
    "DisruptionBudgetTracker",
    "EvictionExecutor",
    "EvictionPlanner",
    "EvictionRateLimiter",
    "RemediationController",
    "RemediationReport",
    "TokenBucket",
    "evaluate_budget",
    "health_key",
]
