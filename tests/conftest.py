from __future__ import annotations

import asyncio
from typing import Any, List, Optional, Tuple

import pytest


class ManualClock:
    """Virtual monotonic clock whose sleepers wake only when time is advanced."""

    def __init__(self) -> None:
        self.now = 0.0
        self._sleepers: List[Tuple[float, "asyncio.Future[None]"]] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        future: "asyncio.Future[None]" = asyncio.get_running_loop().create_future()
        self._sleepers.append((self.now + delay, future))
        await future

    async def advance(self, seconds: float) -> None:
        self.now += seconds
        due = [entry for entry in self._sleepers if entry[0] <= self.now]
        self._sleepers = [entry for entry in self._sleepers if entry[0] > self.now]
        for _, future in due:
            if not future.done():
                future.set_result(None)
        await settle()


async def settle(rounds: int = 50) -> None:
    """Let every runnable task on the loop make progress."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class RecordingConnection:
    """In-memory stand-in for a WebSocket connection."""

    def __init__(self, fail_after: Optional[int] = None, delay: float = 0.0) -> None:
        self.sent: List[Any] = []
        self.closed = False
        self.close_code: Optional[int] = None
        self._fail_after = fail_after
        self._delay = delay

    async def send_json(self, data: Any) -> None:
        if self._fail_after is not None and len(self.sent) >= self._fail_after:
            raise ConnectionResetError("connection lost")
        if self._delay:
            await asyncio.sleep(self._delay)
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.closed = True
        self.close_code = code


@pytest.fixture
def manual_clock() -> ManualClock:
    return ManualClock()
