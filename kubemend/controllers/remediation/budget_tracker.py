"""Disruption budget tracker - how many more evictions a budget allows.

Every call re-evaluates against a fresh snapshot from the snapshot source
(normally ``ClusterStateObserver.snapshot``). Nothing is cached between calls
because each eviction changes the healthy count.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from kubemend.constants.limits import UNBOUNDED_DISRUPTIONS
from kubemend.models.core.pod_info import PodRef
from kubemend.models.pdb.pdb_info import BudgetStatus, DisruptionBudget
from kubemend.models.state.cluster_snapshot import ClusterSnapshot
from kubemend.utils.resource_parser import scaled_value

logger = logging.getLogger(__name__)


def evaluate_budget(budget: DisruptionBudget, snapshot: ClusterSnapshot) -> BudgetStatus:
    """Compute a budget's status from the live pod set in ``snapshot``.

    - expected pods: selected pods that are not Succeeded/Failed
    - current healthy: selected pods that are ready and not pending deletion
    - desired healthy: ``minAvailable`` or ``expected - maxUnavailable``;
      percentages are rounded up against the expected count
    """
    selected = [pod for pod in snapshot.pods_selected_by(budget) if not pod.is_terminal]
    expected = len(selected)
    current_healthy = sum(1 for pod in selected if pod.is_healthy)

    try:
        if budget.min_available is not None:
            desired = scaled_value(budget.min_available, expected)
        elif budget.max_unavailable is not None:
            desired = max(0, expected - scaled_value(budget.max_unavailable, expected))
        else:
            # neither threshold set: keep at least one healthy pod
            desired = 1
    except ValueError:
        logger.warning("Budget %s has an unparseable threshold, allowing nothing", budget.key)
        desired = expected + 1

    return BudgetStatus(
        budget_key=budget.key,
        expected_pods=expected,
        current_healthy=current_healthy,
        desired_healthy=desired,
        disruptions_allowed=max(0, current_healthy - desired),
    )


class DisruptionBudgetTracker:
    """Answers ``allowed_disruptions`` against the current observed state."""

    def __init__(self, snapshot_source: Callable[[], ClusterSnapshot]) -> None:
        self._snapshot_source = snapshot_source

    def budget_statuses(self, pods: Iterable[PodRef]) -> list[BudgetStatus]:
        """Statuses of every budget governing any of ``pods``."""
        snapshot = self._snapshot_source()
        budgets: dict[str, DisruptionBudget] = {}
        for pod in pods:
            for budget in snapshot.budgets_for(pod):
                budgets[budget.key] = budget
        return [evaluate_budget(budgets[key], snapshot) for key in sorted(budgets)]

    def allowed_disruptions(self, pods: Iterable[PodRef]) -> int:
        """Additional evictions allowed for a group of pods.

        The minimum over all governing budgets; ``UNBOUNDED_DISRUPTIONS`` when
        no budget governs any of the pods.
        """
        statuses = self.budget_statuses(pods)
        if not statuses:
            return UNBOUNDED_DISRUPTIONS
        allowed = min(status.disruptions_allowed for status in statuses)
        logger.debug(
            "Allowed disruptions=%d (%s)",
            allowed,
            ", ".join(
                f"{s.budget_key}: healthy={s.current_healthy}/desired={s.desired_healthy}"
                for s in statuses
            ),
        )
        return allowed
