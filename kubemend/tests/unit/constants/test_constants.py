"""Unit tests for the constants package.

Tests cover:
- Exit codes and their ordering
- Enum values that must match Kubernetes API strings
- Logical relationships between defaults and limits
"""

from __future__ import annotations

from kubemend.constants import defaults, limits, timeouts
from kubemend.constants.enums import ChangeType, EvictionResult, NodeStatus, PodPhase
from kubemend.constants.values import EXIT_FATAL, EXIT_OK, EXIT_PARTIAL_FAILURE

# =============================================================================
# Exit codes
# =============================================================================


class TestExitCodes:
    """Test process exit codes."""

    def test_values(self) -> None:
        assert (EXIT_OK, EXIT_PARTIAL_FAILURE, EXIT_FATAL) == (0, 1, 2)


# =============================================================================
# Enums
# =============================================================================


class TestEnums:
    """Test enum values mirror the API."""

    def test_pod_phases(self) -> None:
        assert {p.value for p in PodPhase} == {
            "Pending",
            "Running",
            "Succeeded",
            "Failed",
            "Unknown",
        }

    def test_node_status(self) -> None:
        assert NodeStatus.READY.value == "Ready"

    def test_watch_event_types(self) -> None:
        for name in ("ADDED", "MODIFIED", "DELETED", "BOOKMARK"):
            assert ChangeType(name).value == name

    def test_eviction_results(self) -> None:
        assert EvictionResult.DENIED_BUDGET.value == "Denied(budget)"
        assert EvictionResult.DENIED_API_ERROR.value == "Denied(apiError)"


# =============================================================================
# Defaults within limits
# =============================================================================


class TestDefaultsWithinLimits:
    """Test defaults satisfy their validation ranges."""

    def test_concurrency(self) -> None:
        assert (
            limits.MAX_CONCURRENCY_MIN
            <= defaults.MAX_CONCURRENCY_DEFAULT
            <= limits.MAX_CONCURRENCY_MAX
        )

    def test_attempts(self) -> None:
        assert limits.MAX_ATTEMPTS_MIN <= defaults.MAX_ATTEMPTS_DEFAULT <= limits.MAX_ATTEMPTS_MAX

    def test_failure_ratio(self) -> None:
        assert (
            limits.FAILURE_RATIO_MIN
            <= defaults.FAILURE_RATIO_THRESHOLD_DEFAULT
            <= limits.FAILURE_RATIO_MAX
        )

    def test_backoff_ordering(self) -> None:
        assert defaults.BACKOFF_BASE_SECONDS_DEFAULT < defaults.BACKOFF_MAX_SECONDS_DEFAULT
        assert timeouts.RESYNC_BACKOFF_SECONDS < timeouts.RESYNC_BACKOFF_MAX_SECONDS

    def test_all_exports_exist(self) -> None:
        for module in (defaults, limits, timeouts):
            for name in module.__all__:
                assert hasattr(module, name)
