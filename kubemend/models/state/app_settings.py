"""Application settings models."""

from pydantic import BaseModel, ConfigDict, Field

from kubemend.constants.defaults import (
    BACKOFF_BASE_SECONDS_DEFAULT,
    BACKOFF_MAX_SECONDS_DEFAULT,
    BREAKER_COOLDOWN_SECONDS_DEFAULT,
    BREAKER_MIN_SAMPLES_DEFAULT,
    BUDGET_REQUEUE_DELAY_SECONDS_DEFAULT,
    BURST_DEFAULT,
    EVICTIONS_PER_SECOND_DEFAULT,
    FAILURE_RATIO_THRESHOLD_DEFAULT,
    FAILURE_WINDOW_SECONDS_DEFAULT,
    MAX_ATTEMPTS_DEFAULT,
    MAX_BUDGET_REQUEUES_DEFAULT,
    MAX_CONCURRENCY_DEFAULT,
    NODE_NOT_READY_GRACE_SECONDS_DEFAULT,
    NODE_REMEDIATION_COOLDOWN_SECONDS_DEFAULT,
    POD_NOT_READY_GRACE_SECONDS_DEFAULT,
    PROTECTED_NAMESPACES_DEFAULT,
    RECONCILE_INTERVAL_SECONDS_DEFAULT,
)
from kubemend.constants.limits import (
    FAILURE_RATIO_MAX,
    FAILURE_RATIO_MIN,
    MAX_ATTEMPTS_MAX,
    MAX_ATTEMPTS_MIN,
    MAX_CONCURRENCY_MAX,
    MAX_CONCURRENCY_MIN,
)
from kubemend.constants.timeouts import INITIAL_SYNC_TIMEOUT, SHUTDOWN_GRACE_SECONDS


class RemediationSettings(BaseModel):
    """Remediation settings model with validation."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    # Cluster access
    kubeconfig: str | None = None
    context: str | None = None

    # Executor
    max_concurrency: int = Field(
        MAX_CONCURRENCY_DEFAULT, ge=MAX_CONCURRENCY_MIN, le=MAX_CONCURRENCY_MAX
    )
    max_attempts: int = Field(MAX_ATTEMPTS_DEFAULT, ge=MAX_ATTEMPTS_MIN, le=MAX_ATTEMPTS_MAX)
    max_budget_requeues: int = Field(MAX_BUDGET_REQUEUES_DEFAULT, ge=0)
    backoff_base_seconds: float = Field(BACKOFF_BASE_SECONDS_DEFAULT, gt=0)
    backoff_max_seconds: float = Field(BACKOFF_MAX_SECONDS_DEFAULT, gt=0)
    budget_requeue_delay_seconds: float = Field(BUDGET_REQUEUE_DELAY_SECONDS_DEFAULT, ge=0)
    shutdown_grace_seconds: float = Field(SHUTDOWN_GRACE_SECONDS, ge=0)

    # Rate limiter / circuit breaker
    evictions_per_second: float = Field(EVICTIONS_PER_SECOND_DEFAULT, gt=0)
    burst: int = Field(BURST_DEFAULT, ge=1)
    failure_ratio_threshold: float = Field(
        FAILURE_RATIO_THRESHOLD_DEFAULT, ge=FAILURE_RATIO_MIN, le=FAILURE_RATIO_MAX
    )
    failure_window_seconds: float = Field(FAILURE_WINDOW_SECONDS_DEFAULT, gt=0)
    breaker_min_samples: int = Field(BREAKER_MIN_SAMPLES_DEFAULT, ge=1)
    breaker_cooldown_seconds: float = Field(BREAKER_COOLDOWN_SECONDS_DEFAULT, ge=0)

    # Observer
    initial_sync_timeout_seconds: float = Field(INITIAL_SYNC_TIMEOUT, gt=0)

    # Control loop (watch mode)
    reconcile_interval_seconds: float = Field(RECONCILE_INTERVAL_SECONDS_DEFAULT, gt=0)
    node_not_ready_grace_seconds: float = Field(NODE_NOT_READY_GRACE_SECONDS_DEFAULT, ge=0)
    pod_not_ready_grace_seconds: float = Field(POD_NOT_READY_GRACE_SECONDS_DEFAULT, ge=0)
    node_remediation_cooldown_seconds: float = Field(
        NODE_REMEDIATION_COOLDOWN_SECONDS_DEFAULT, ge=0
    )
    remediate_unready_pods: bool = True

    # Guardrails
    protected_namespaces: list[str] = list(PROTECTED_NAMESPACES_DEFAULT)
    cordon_before_drain: bool = True
    dry_run: bool = False


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when settings fail to load."""
