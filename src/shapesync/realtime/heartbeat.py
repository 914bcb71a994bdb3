"""Recurring liveness sweep task."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = structlog.get_logger(__name__)


class Heartbeat:
    """Run a callback every ``interval`` seconds in a background task.

    The callback is the supervisor's sweep. A failing sweep is logged and the
    schedule continues.
    """

    def __init__(self, interval: float, callback: Callable[[], Awaitable[object]]) -> None:
        """Initialize the heartbeat.

        Args:
            interval: Seconds between two callback runs.
            callback: Coroutine function invoked on every tick.

        Raises:
            ValueError: If the interval is not positive.
        """
        if interval <= 0:
            msg = f"Heartbeat interval must be positive, got {interval}"
            raise ValueError(msg)
        self._interval = interval
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    @property
    def interval(self) -> float:
        """Get the tick interval in seconds."""
        return self._interval

    @property
    def running(self) -> bool:
        """Check whether the background task is active."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking. Calling start on a running heartbeat does nothing."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info("Heartbeat started", interval=self._interval)

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Heartbeat stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._callback()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Heartbeat tick failed")
