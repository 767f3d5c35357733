"""PodDisruptionBudget models."""

from kubemend.models.pdb.pdb_info import (
    BudgetStatus,
    DisruptionBudget,
    LabelSelector,
    LabelSelectorRequirement,
)

__all__ = [
    "BudgetStatus",
    "DisruptionBudget",
    "LabelSelector",
    "LabelSelectorRequirement",
]
