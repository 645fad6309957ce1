"""Fixed-period tick source for the broadcast cycle."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Union[None, Awaitable[Any]]]


class SchedulerState(str, Enum):
    stopped = "stopped"
    running = "running"


class TickScheduler:
    """Invoke a callback every ``interval`` seconds on the running event loop.

    Ticks never overlap: the loop runs one callback at a time and any deadline
    that passed while a callback was still running is skipped rather than
    queued. A callback that raises is logged and the schedule carries on.
    """

    def __init__(
        self,
        callback: TickCallback,
        interval: float = 2.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        name: str = "tick-scheduler",
    ) -> None:
        if interval <= 0:
            raise ValueError("Tick interval must be positive.")
        self._callback = callback
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._name = name
        self._task: Optional[asyncio.Task[None]] = None
        self.state = SchedulerState.stopped
        self.tick_count = 0
        self.failed_ticks = 0
        self.skipped_ticks = 0

    @property
    def running(self) -> bool:
        return self.state is SchedulerState.running

    def start(self) -> None:
        """Begin ticking; the first tick fires one interval from now."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self._name)
        self.state = SchedulerState.running
        logger.info(
            "Tick scheduler started",
            extra={"interval_ms": int(self.interval * 1000), "state": self.state.value},
        )

    async def stop(self) -> None:
        """Cancel the timer; no tick fires after this returns."""
        self.state = SchedulerState.stopped
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info(
            "Tick scheduler stopped",
            extra={"tick": self.tick_count, "state": self.state.value},
        )

    async def _run(self) -> None:
        next_due = self._clock() + self.interval
        while self.running:
            delay = next_due - self._clock()
            if delay > 0:
                await self._sleep(delay)
            if not self.running:
                return
            await self._fire()
            next_due += self.interval
            now = self._clock()
            if now > next_due:
                missed = int((now - next_due) // self.interval) + 1
                next_due += missed * self.interval
                self.skipped_ticks += missed
                logger.warning(
                    "Tick overran its interval; skipping missed ticks",
                    extra={"tick": self.tick_count, "skipped_ticks": missed},
                )

    async def _fire(self) -> None:
        self.tick_count += 1
        try:
            result = self._callback()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:
            self.failed_ticks += 1
            logger.exception("Tick callback failed", extra={"tick": self.tick_count})
