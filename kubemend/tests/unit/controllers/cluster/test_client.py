"""Tests for API error translation in the cluster client."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import pytest
import urllib3
from kubernetes.client.rest import ApiException

from kubemend.constants.enums import ChangeType, ResourceKind
from kubemend.controllers.cluster.client import (
    KubernetesClusterClient,
    WatchEvent,
    parse_retry_after,
    translate_api_exception,
    translate_exception,
)
from kubemend.controllers.errors import (
    PermanentAPIError,
    TransientAPIError,
    WatchStreamExpired,
)


def _api_exception(status: int, reason: str = "", headers: dict | None = None) -> ApiException:
    exc = ApiException(status=status, reason=reason)
    exc.headers = headers
    return exc


class TestParseRetryAfter:
    """Tests for parse_retry_after."""

    def test_delta_seconds(self) -> None:
        assert parse_retry_after("5") == 5.0
        assert parse_retry_after(2) == 2.0

    def test_negative_is_clamped(self) -> None:
        assert parse_retry_after("-3") == 0.0

    def test_http_date(self) -> None:
        when = datetime.now(timezone.utc) + timedelta(seconds=120)
        delay = parse_retry_after(format_datetime(when, usegmt=True))
        assert delay is not None
        assert 100 < delay <= 120

    @pytest.mark.parametrize("value", [None, "soon"])
    def test_unparseable(self, value) -> None:
        assert parse_retry_after(value) is None


class TestTranslateApiException:
    """Tests for translate_api_exception."""

    def test_gone_is_watch_expired(self) -> None:
        assert isinstance(translate_api_exception(_api_exception(410, "Gone")), WatchStreamExpired)

    def test_too_many_requests_carries_retry_after(self) -> None:
        error = translate_api_exception(
            _api_exception(429, "Too Many Requests", {"Retry-After": "7"})
        )
        assert isinstance(error, TransientAPIError)
        assert error.too_many_requests
        assert error.retry_after == 7.0
        assert str(error) == "429 Too Many Requests"

    @pytest.mark.parametrize("status", [408, 409, 500, 503])
    def test_transient_statuses(self, status: int) -> None:
        error = translate_api_exception(_api_exception(status))
        assert isinstance(error, TransientAPIError)
        assert error.status == status
        assert error.retry_after is None

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 422])
    def test_permanent_statuses(self, status: int) -> None:
        error = translate_api_exception(_api_exception(status))
        assert isinstance(error, PermanentAPIError)
        assert error.status == status

    def test_not_found_flag(self) -> None:
        error = translate_api_exception(_api_exception(404, "Not Found"))
        assert isinstance(error, PermanentAPIError)
        assert error.not_found


class TestTranslateException:
    """Tests for translate_exception."""

    def test_network_errors_are_transient(self) -> None:
        error = translate_exception(urllib3.exceptions.ProtocolError("connection reset"))
        assert isinstance(error, TransientAPIError)
        assert isinstance(translate_exception(ConnectionRefusedError()), TransientAPIError)

    def test_other_exceptions_pass_through(self) -> None:
        exc = KeyError("x")
        assert translate_exception(exc) is exc


class TestWatchEvents:
    """Tests for raw watch event conversion."""

    def test_regular_event(self) -> None:
        raw = {
            "type": "MODIFIED",
            "raw_object": {"metadata": {"name": "p1", "resourceVersion": "42"}},
        }
        event = KubernetesClusterClient._to_watch_event(ResourceKind.PODS, raw)
        assert event == WatchEvent(ChangeType.MODIFIED, ResourceKind.PODS, raw["raw_object"])
        assert event.resource_version == "42"

    def test_error_410_expires_stream(self) -> None:
        raw = {"type": "ERROR", "raw_object": {"code": 410, "message": "too old"}}
        with pytest.raises(WatchStreamExpired, match="too old"):
            KubernetesClusterClient._to_watch_event(ResourceKind.PODS, raw)

    def test_other_error_is_transient(self) -> None:
        raw = {"type": "ERROR", "raw_object": {"code": 500, "message": "boom"}}
        with pytest.raises(TransientAPIError):
            KubernetesClusterClient._to_watch_event(ResourceKind.NODES, raw)
