"""Exception taxonomy for cluster access and remediation.

- ``TransientAPIError``: retryable (5xx, timeouts, conflicts, 429).
- ``PermanentAPIError``: not retryable (pod/node gone, forbidden, bad request).
- ``BudgetExhausted``: a disruption budget allows no eviction right now; the
  entry is requeued, this is not a failure.
- ``WatchStreamExpired``: the watch resource version is too old; handled by a
  resync inside the observer and never surfaced to callers.
- ``TargetNotFoundError``: a named node or pod is not in the observed state.
- ``FatalError``: the run cannot start or continue (credentials, API
  unreachable, observer stopped).
"""

from __future__ import annotations


class KubemendError(Exception):
    """Base exception for kubemend."""


class APIError(KubemendError):
    """Error returned by (or while reaching) the Kubernetes API."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class TransientAPIError(APIError):
    """Retryable API error."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, status)
        self.retry_after = retry_after

    @property
    def too_many_requests(self) -> bool:
        """Server refused because a budget would be violated (HTTP 429)."""
        return self.status == 429


class PermanentAPIError(APIError):
    """Non-retryable API error."""

    @property
    def not_found(self) -> bool:
        return self.status == 404


class WatchStreamExpired(APIError):
    """Watch resource version is no longer available (HTTP 410)."""

    def __init__(self, message: str = "resource version too old") -> None:
        super().__init__(message, 410)


class BudgetExhausted(KubemendError):
    """No disruption is currently allowed for the pod's budget group."""

    def __init__(self, pod_key: str, allowed: int = 0) -> None:
        super().__init__(f"disruption budget exhausted for {pod_key} (allowed={allowed})")
        self.pod_key = pod_key
        self.allowed = allowed


class TargetNotFoundError(KubemendError):
    """A remediation target cannot be resolved against the observed state."""


class FatalError(KubemendError):
    """Startup cannot proceed."""


class FatalAuthError(FatalError):
    """Cluster credentials cannot be loaded or are rejected."""


class ClusterUnreachableError(FatalError):
    """The Kubernetes API cannot be reached at all."""


class ObserverStoppedError(FatalError):
    """The cluster observer stopped; its state can no longer be trusted."""


def as_fatal(exc: BaseException, context: str) -> FatalError:
    """Classify an error that ends the run as a ``FatalError``.

    401/403 become ``FatalAuthError``, other API errors
    ``ClusterUnreachableError`` and anything else ``ObserverStoppedError``.
    """
    if isinstance(exc, FatalError):
        return exc
    message = f"{context}: {exc}"
    if isinstance(exc, APIError):
        if exc.status in (401, 403):
            return FatalAuthError(message)
        return ClusterUnreachableError(message)
    return ObserverStoppedError(message)


__all__ = [
    "APIError",
    "BudgetExhausted",
    "ClusterUnreachableError",
    "FatalAuthError",
    "FatalError",
    "KubemendError",
    "ObserverStoppedError",
    "PermanentAPIError",
    "TargetNotFoundError",
    "TransientAPIError",
    "WatchStreamExpired",
    "as_fatal",
]
