"""Async helpers shared by the executor and the rate limiter."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

# Sleep signature used by components that must wake up early on shutdown.
StopAwareSleep = Callable[[float, "asyncio.Event | None"], Awaitable[bool]]


async def interruptible_sleep(delay: float, stop: asyncio.Event | None = None) -> bool:
    """Sleep for ``delay`` seconds or until ``stop`` is set.

    Returns:
        True if ``stop`` was set before the delay elapsed.
    """
    if stop is None:
        await asyncio.sleep(max(0.0, delay))
        return False
    if stop.is_set():
        return True
    try:
        await asyncio.wait_for(stop.wait(), timeout=max(0.0, delay))
    except asyncio.TimeoutError:
        return False
    return True


__all__ = ["StopAwareSleep", "interruptible_sleep"]
