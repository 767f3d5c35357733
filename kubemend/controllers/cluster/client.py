"""Cluster client - the narrow slice of the Kubernetes API kubemend consumes.

``ClusterClient`` is the interface the observer and executor depend on.
``KubernetesClusterClient`` implements it on top of the official ``kubernetes``
package. Blocking client calls run in worker threads; watch streams are pumped
from a daemon thread into an asyncio queue. API objects are converted into
plain API-shaped dictionaries (camelCase keys, as kubectl prints them).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

import urllib3
from kubernetes import client, config, watch
from kubernetes.client.rest import ApiException

from kubemend.constants.enums import ChangeType, ResourceKind
from kubemend.constants.timeouts import (
    CLUSTER_CHECK_TIMEOUT,
    CLUSTER_REQUEST_TIMEOUT,
    WATCH_TIMEOUT_SECONDS,
)
from kubemend.controllers.errors import (
    APIError,
    ClusterUnreachableError,
    FatalAuthError,
    PermanentAPIError,
    TransientAPIError,
    WatchStreamExpired,
)

logger = logging.getLogger(__name__)

_TRANSIENT_STATUSES = frozenset({408, 409, 429})
_STREAM_END = object()


@dataclass
class WatchEvent:
    """One event from a watch stream."""

    type: ChangeType
    kind: ResourceKind
    object: dict[str, Any] = field(default_factory=dict)

    @property
    def resource_version(self) -> str | None:
        return (self.object.get("metadata") or {}).get("resourceVersion")


def parse_retry_after(value: Any) -> float | None:
    """Parse a Retry-After header (delta-seconds or HTTP-date) into seconds."""
    if value is None:
        return None
    text = str(value).strip()
    try:
        return max(0.0, float(text))
    except ValueError:
        pass
    with contextlib.suppress(TypeError, ValueError, IndexError):
        when = parsedate_to_datetime(text)
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())
    return None


def translate_api_exception(exc: ApiException) -> APIError:
    """Classify an ApiException into the kubemend error taxonomy."""
    status = exc.status or None
    message = f"{status} {exc.reason}".strip() if status else str(exc.reason or exc)

    if status == 410:
        return WatchStreamExpired(message)
    if status is None or status in _TRANSIENT_STATUSES or status >= 500:
        headers = exc.headers or {}
        return TransientAPIError(
            message,
            status=status,
            retry_after=parse_retry_after(headers.get("Retry-After")),
        )
    return PermanentAPIError(message, status=status)


def translate_exception(exc: BaseException) -> BaseException:
    """Map client-library exceptions to kubemend errors, passing others through."""
    if isinstance(exc, ApiException):
        return translate_api_exception(exc)
    if isinstance(exc, (urllib3.exceptions.HTTPError, OSError, TimeoutError)):
        return TransientAPIError(f"cluster request failed: {exc}")
    return exc


class ClusterClient(ABC):
    """Operations kubemend needs from the Kubernetes API."""

    @abstractmethod
    async def check_connection(self) -> None:
        """Verify the API answers.

        Raises:
            FatalAuthError: Credentials were rejected.
            ClusterUnreachableError: The API server cannot be reached.
        """

    @abstractmethod
    async def list_objects(self, kind: ResourceKind) -> tuple[list[dict[str, Any]], str | None]:
        """List all objects of a kind across namespaces.

        Returns:
            Tuple of API-shaped items and the list resource version.
        """

    @abstractmethod
    def watch(
        self, kind: ResourceKind, resource_version: str | None
    ) -> AsyncIterator[WatchEvent]:
        """Stream changes after ``resource_version``.

        The iterator ends when the server closes the stream. It raises
        ``WatchStreamExpired`` when the resource version is too old and
        ``TransientAPIError`` on network failures.
        """

    @abstractmethod
    async def evict_pod(self, namespace: str, name: str) -> None:
        """POST to the pod's eviction subresource."""

    @abstractmethod
    async def cordon_node(self, name: str) -> None:
        """Mark a node unschedulable."""

    async def list_pods(self) -> tuple[list[dict[str, Any]], str | None]:
        return await self.list_objects(ResourceKind.PODS)

    async def list_nodes(self) -> tuple[list[dict[str, Any]], str | None]:
        return await self.list_objects(ResourceKind.NODES)

    async def list_pdbs(self) -> tuple[list[dict[str, Any]], str | None]:
        return await self.list_objects(ResourceKind.PDBS)


class KubernetesClusterClient(ClusterClient):
    """``ClusterClient`` backed by the official kubernetes Python client.

    Constructed once at startup and passed to every component; it holds its
    own ``ApiClient`` so nothing relies on the library's global configuration.
    """

    def __init__(
        self,
        api_client: client.ApiClient,
        request_timeout: float = CLUSTER_REQUEST_TIMEOUT,
        watch_timeout_seconds: int = WATCH_TIMEOUT_SECONDS,
    ) -> None:
        self._api_client = api_client
        self._core_v1 = client.CoreV1Api(api_client)
        self._policy_v1 = client.PolicyV1Api(api_client)
        self._request_timeout = request_timeout
        self._watch_timeout_seconds = watch_timeout_seconds

    @classmethod
    def from_config(
        cls,
        kubeconfig: str | None = None,
        context: str | None = None,
    ) -> KubernetesClusterClient:
        """Load credentials and build a client.

        Without an explicit kubeconfig or context, in-cluster credentials are
        tried first, then the default kubeconfig.

        Raises:
            FatalAuthError: No usable credentials were found.
        """
        try:
            if kubeconfig is None and context is None:
                try:
                    configuration = client.Configuration()
                    config.load_incluster_config(client_configuration=configuration)
                    logger.info("Using in-cluster Kubernetes config")
                    return cls(client.ApiClient(configuration))
                except config.ConfigException:
                    logger.debug("In-cluster config unavailable, falling back to kubeconfig")

            api_client = config.new_client_from_config(config_file=kubeconfig, context=context)
            logger.info(
                "Using kubeconfig %s (context=%s)", kubeconfig or "default", context or "current"
            )
            return cls(api_client)
        except (config.ConfigException, OSError) as exc:
            raise FatalAuthError(f"Cannot load Kubernetes credentials: {exc}") from exc

    def _list_function(self, kind: ResourceKind) -> Callable[..., Any]:
        if kind == ResourceKind.PODS:
            return self._core_v1.list_pod_for_all_namespaces
        if kind == ResourceKind.NODES:
            return self._core_v1.list_node
        return self._policy_v1.list_pod_disruption_budget_for_all_namespaces

    async def _call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except Exception as exc:
            translated = translate_exception(exc)
            if translated is exc:
                raise
            raise translated from exc

    def _to_dict(self, obj: Any) -> dict[str, Any]:
        return self._api_client.sanitize_for_serialization(obj)

    async def check_connection(self) -> None:
        version_api = client.VersionApi(self._api_client)
        try:
            info = await asyncio.wait_for(
                self._call(version_api.get_code, _request_timeout=CLUSTER_CHECK_TIMEOUT),
                timeout=CLUSTER_CHECK_TIMEOUT + 1,
            )
        except PermanentAPIError as exc:
            if exc.status in (401, 403):
                raise FatalAuthError(f"Cluster rejected credentials: {exc}") from exc
            raise ClusterUnreachableError(f"Cluster API check failed: {exc}") from exc
        except (TransientAPIError, asyncio.TimeoutError) as exc:
            raise ClusterUnreachableError(f"Cannot reach cluster API: {exc}") from exc
        logger.debug("Connected to Kubernetes %s", getattr(info, "git_version", "unknown"))

    async def list_objects(self, kind: ResourceKind) -> tuple[list[dict[str, Any]], str | None]:
        result = await self._call(
            self._list_function(kind), _request_timeout=self._request_timeout
        )
        items = [self._to_dict(item) for item in result.items or []]
        resource_version = result.metadata.resource_version if result.metadata else None
        logger.debug("Listed %d %s at resourceVersion=%s", len(items), kind.value, resource_version)
        return items, resource_version

    async def watch(
        self, kind: ResourceKind, resource_version: str | None
    ) -> AsyncIterator[WatchEvent]:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[Any] = asyncio.Queue()
        watcher = watch.Watch()
        list_function = self._list_function(kind)
        kwargs: dict[str, Any] = {
            "timeout_seconds": self._watch_timeout_seconds,
            "allow_watch_bookmarks": True,
        }
        if resource_version:
            kwargs["resource_version"] = resource_version

        def put(item: Any) -> None:
            # The loop may already be closed when a stopped stream wakes up.
            with contextlib.suppress(RuntimeError):
                loop.call_soon_threadsafe(queue.put_nowait, item)

        def pump() -> None:
            try:
                for raw in watcher.stream(list_function, **kwargs):
                    put(raw)
            except Exception as exc:
                put(exc)
            else:
                put(_STREAM_END)

        thread = threading.Thread(target=pump, name=f"kubemend-watch-{kind.value}", daemon=True)
        thread.start()
        try:
            while True:
                item = await queue.get()
                if item is _STREAM_END:
                    return
                if isinstance(item, BaseException):
                    translated = translate_exception(item)
                    if translated is item:
                        raise item
                    raise translated from item
                yield self._to_watch_event(kind, item)
        finally:
            watcher.stop()

    @staticmethod
    def _to_watch_event(kind: ResourceKind, raw: dict[str, Any]) -> WatchEvent:
        event_type = str(raw.get("type", ""))
        obj = raw.get("raw_object") or {}
        if event_type == "ERROR":
            code = obj.get("code")
            if code == 410:
                raise WatchStreamExpired(str(obj.get("message") or "resource version too old"))
            raise TransientAPIError(f"watch error: {obj.get('message')}", status=code)
        return WatchEvent(type=ChangeType(event_type), kind=kind, object=obj)

    async def evict_pod(self, namespace: str, name: str) -> None:
        body = client.V1Eviction(
            metadata=client.V1ObjectMeta(name=name, namespace=namespace),
        )
        await self._call(
            self._core_v1.create_namespaced_pod_eviction,
            name=name,
            namespace=namespace,
            body=body,
            _request_timeout=self._request_timeout,
        )

    async def cordon_node(self, name: str) -> None:
        await self._call(
            self._core_v1.patch_node,
            name,
            {"spec": {"unschedulable": True}},
            _request_timeout=self._request_timeout,
        )
        logger.info("Cordoned node %s", name)


__all__ = [
    "ClusterClient",
    "KubernetesClusterClient",
    "WatchEvent",
    "parse_retry_after",
    "translate_api_exception",
]
