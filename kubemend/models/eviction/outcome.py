"""Eviction outcome models."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from kubemend.constants.enums import EvictionResult
from kubemend.models.core.pod_info import PodRef

_FINAL_RESULTS = frozenset(
    {
        EvictionResult.EVICTED,
        EvictionResult.DENIED_API_ERROR,
        EvictionResult.ABANDONED,
    }
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EvictionOutcome(BaseModel):
    """Recorded result of one eviction attempt. Immutable once recorded."""

    model_config = ConfigDict(frozen=True)

    pod: PodRef
    result: EvictionResult
    attempt: int = 1
    detail: str = ""
    status_code: int | None = None
    recorded_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_final(self) -> bool:
        return self.result in _FINAL_RESULTS

    @property
    def is_failure(self) -> bool:
        """Final outcomes that count against a remediation run.

        A 404 means the pod is already gone, which is the goal of an eviction.
        """
        if self.result == EvictionResult.ABANDONED:
            return True
        return self.result == EvictionResult.DENIED_API_ERROR and self.status_code != 404


class RemediationSummary(BaseModel):
    """Aggregated view of an executor run."""

    model_config = ConfigDict(frozen=True)

    final: dict[str, EvictionOutcome]
    counts: dict[str, int]

    @classmethod
    def from_outcomes(cls, outcomes: list[EvictionOutcome]) -> RemediationSummary:
        final: dict[str, EvictionOutcome] = {}
        for outcome in outcomes:
            final[outcome.pod.key] = outcome
        counts = Counter(outcome.result.value for outcome in final.values())
        return cls(final=final, counts=dict(counts))

    @property
    def failures(self) -> list[EvictionOutcome]:
        return [outcome for outcome in self.final.values() if outcome.is_failure]

    @property
    def succeeded(self) -> bool:
        return not self.failures
