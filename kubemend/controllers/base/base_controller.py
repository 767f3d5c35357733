"""Base controller with asyncio lifecycle patterns for kubemend.

This module provides the foundation for long-lived background loops (the
cluster observer and the remediation control loop), each owning exactly one
asyncio task.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class WorkerResult:
    """Result wrapper for a finished controller loop."""

    success: bool
    data: Any | None = None
    error: str | None = None
    duration_ms: float = 0.0


class AsyncControllerMixin:
    """Mixin tracking the lifecycle of a controller's background task."""

    def __init__(self) -> None:
        """Initialize the async controller mixin."""
        self._task: asyncio.Task[None] | None = None
        self._load_start_time: float | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def task(self) -> asyncio.Task[None] | None:
        """The background task, or None before ``start``."""
        return self._task


class BaseController(AsyncControllerMixin, ABC):
    """Base controller class owning one background task.

    Subclasses implement ``_run``, the loop body.
    """

    name: str = "controller"

    @abstractmethod
    async def _run(self) -> None:
        """Loop body; runs until cancelled."""
        ...

    def start(self) -> asyncio.Task[None]:
        """Spawn the background task. Calling twice returns the same task."""
        if self._task is not None and not self._task.done():
            return self._task
        loop = asyncio.get_running_loop()
        self._load_start_time = loop.time()
        self._task = asyncio.create_task(self._run(), name=f"kubemend-{self.name}")
        self._task.add_done_callback(self._on_task_done)
        logger.debug("Started %s", self.name)
        return self._task

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("%s loop stopped with error: %s", self.name, exc)

    async def stop(self) -> WorkerResult:
        """Cancel the background task and wait for it to finish."""
        task = self._task
        if task is None:
            return WorkerResult(success=True)

        loop = asyncio.get_running_loop()
        started = self._load_start_time or loop.time()
        if not task.done():
            task.cancel()
        error: str | None = None
        with contextlib.suppress(asyncio.CancelledError):
            try:
                await task
            except Exception as exc:
                error = str(exc)
        self._task = None
        logger.debug("Stopped %s", self.name)
        return WorkerResult(
            success=error is None,
            error=error,
            duration_ms=(loop.time() - started) * 1000,
        )
