"""Eviction plan and outcome models."""

from kubemend.models.eviction.outcome import EvictionOutcome, RemediationSummary
from kubemend.models.eviction.plan import EvictionPlanEntry, RemediationRequest

__all__ = [
    "EvictionOutcome",
    "EvictionPlanEntry",
    "RemediationRequest",
    "RemediationSummary",
]
