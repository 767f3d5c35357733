"""PodDisruptionBudget models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from kubemend.models.core.pod_info import pod_key


class LabelSelectorRequirement(BaseModel):
    """One ``matchExpressions`` entry of a label selector."""

    model_config = ConfigDict(frozen=True)

    key: str
    operator: str  # In|NotIn|Exists|DoesNotExist
    values: tuple[str, ...] = ()

    def matches(self, labels: dict[str, str]) -> bool:
        present = self.key in labels
        if self.operator == "In":
            return present and labels[self.key] in self.values
        if self.operator == "NotIn":
            return not present or labels[self.key] not in self.values
        if self.operator == "Exists":
            return present
        if self.operator == "DoesNotExist":
            return not present
        # Unknown operators select nothing, same as the API server.
        return False


class LabelSelector(BaseModel):
    """Kubernetes label selector.

    An empty selector selects every pod in the namespace (policy/v1 semantics).
    A budget with no selector at all is represented by ``None`` and selects
    nothing.
    """

    model_config = ConfigDict(frozen=True)

    match_labels: dict[str, str] = Field(default_factory=dict)
    match_expressions: tuple[LabelSelectorRequirement, ...] = ()

    def matches(self, labels: dict[str, str]) -> bool:
        for key, expected in self.match_labels.items():
            if labels.get(key) != expected:
                return False
        return all(req.matches(labels) for req in self.match_expressions)


class DisruptionBudget(BaseModel):
    """Immutable view of a PodDisruptionBudget spec.

    Health counts are not stored; the budget tracker recomputes them from the
    live pod set on every evaluation.
    """

    model_config = ConfigDict(frozen=True)

    namespace: str
    name: str
    selector: LabelSelector | None = None
    min_available: int | str | None = None
    max_unavailable: int | str | None = None

    @property
    def key(self) -> str:
        return pod_key(self.namespace, self.name)

    def selects(self, namespace: str, labels: dict[str, str]) -> bool:
        if self.selector is None or namespace != self.namespace:
            return False
        return self.selector.matches(labels)


class BudgetStatus(BaseModel):
    """Point-in-time evaluation of one budget."""

    model_config = ConfigDict(frozen=True)

    budget_key: str
    expected_pods: int
    current_healthy: int
    desired_healthy: int
    disruptions_allowed: int
