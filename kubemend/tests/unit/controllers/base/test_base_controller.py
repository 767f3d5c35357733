"""Tests for base controller module."""

from __future__ import annotations

import asyncio

import pytest

from kubemend.controllers.base.base_controller import (
    AsyncControllerMixin,
    BaseController,
    WorkerResult,
)


class _LoopController(BaseController):
    name = "loop"

    def __init__(self, fail_with: Exception | None = None) -> None:
        super().__init__()
        self.fail_with = fail_with
        self.iterations = 0

    async def _run(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        while True:
            self.iterations += 1
            await asyncio.sleep(0.001)


class TestWorkerResult:
    """Tests for WorkerResult dataclass."""

    def test_worker_result_success(self) -> None:
        """Test successful worker result."""
        result = WorkerResult(success=True, data={"key": "value"}, duration_ms=100.0)
        assert result.success is True
        assert result.data == {"key": "value"}
        assert result.error is None

    def test_worker_result_defaults(self) -> None:
        """Test WorkerResult default values."""
        result = WorkerResult(success=False)
        assert result.data is None
        assert result.error is None
        assert result.duration_ms == 0.0


class TestAsyncControllerMixin:
    """Tests for AsyncControllerMixin class."""

    def test_mixin_init(self) -> None:
        """Test AsyncControllerMixin initialization."""
        mixin = AsyncControllerMixin()
        assert mixin._load_start_time is None
        assert mixin.running is False


class TestBaseController:
    """Tests for BaseController lifecycle."""

    def test_base_controller_is_abstract(self) -> None:
        """Test that BaseController cannot be instantiated directly."""
        with pytest.raises(TypeError):
            BaseController()  # type: ignore[abstract]

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self) -> None:
        controller = _LoopController()
        first = controller.start()
        assert controller.start() is first
        assert controller.running
        await controller.stop()

    @pytest.mark.asyncio
    async def test_stop_cancels_loop(self) -> None:
        controller = _LoopController()
        controller.start()
        await asyncio.sleep(0.01)

        result = await controller.stop()

        assert result.success is True
        assert result.duration_ms > 0
        assert controller.iterations > 0
        assert not controller.running

    @pytest.mark.asyncio
    async def test_stop_reports_loop_error(self) -> None:
        """Test a crashed loop surfaces its error through stop()."""
        controller = _LoopController(fail_with=RuntimeError("boom"))
        controller.start()
        await asyncio.sleep(0)

        result = await controller.stop()

        assert result.success is False
        assert result.error == "boom"

    @pytest.mark.asyncio
    async def test_stop_without_start(self) -> None:
        assert (await _LoopController().stop()).success is True

    @pytest.mark.asyncio
    async def test_restart_after_failure(self) -> None:
        controller = _LoopController(fail_with=RuntimeError("boom"))
        first = controller.start()
        await asyncio.sleep(0)
        assert first.done()

        controller.fail_with = None
        second = controller.start()

        assert second is not first
        assert controller.task is second
        await controller.stop()
