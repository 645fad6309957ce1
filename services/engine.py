"""Wiring and lifecycle of the telemetry generation-and-fan-out engine."""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from functools import lru_cache
from typing import Any, Awaitable, Callable, Dict, Optional

from models.errors import EngineStateError
from models.records import SensorSnapshot
from services.hub import SubscriberHub
from services.registry import SensorRegistry, build_registry, describe_channels
from services.scheduler import TickScheduler
from services.snapshot import SnapshotService
from settings import get_settings

logger = logging.getLogger(__name__)


class EngineState(str, Enum):
    uninitialized = "uninitialized"
    initialized = "initialized"
    running = "running"
    stopped = "stopped"


class TelemetryEngine:
    """Owns the registry, tick scheduler, subscriber hub and snapshot service.

    An engine built without a registry stays ``uninitialized`` until
    :meth:`initialize` installs one. Only an initialized engine can start.
    """

    def __init__(
        self,
        registry: Optional[SensorRegistry] = None,
        interval: float = 2.0,
        queue_size: int = 16,
        send_timeout: float = 1.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.state = EngineState.uninitialized
        self.registry: Optional[SensorRegistry] = None
        self.snapshots: Optional[SnapshotService] = None
        self.hub = SubscriberHub(
            self._current_snapshot,
            queue_size=queue_size,
            send_timeout=send_timeout,
        )
        self.scheduler = TickScheduler(
            self.tick, interval=interval, clock=clock, sleep=sleep, name="sensor-tick"
        )
        self.last_broadcast: Optional[SensorSnapshot] = None
        if registry is not None:
            self.initialize(registry)

    def initialize(self, registry: SensorRegistry) -> None:
        if self.state is not EngineState.uninitialized:
            raise EngineStateError(f"Cannot initialize engine in state {self.state.value!r}.")
        self.registry = registry
        self.snapshots = SnapshotService(registry)
        self.state = EngineState.initialized
        logger.info(
            "Telemetry engine initialized",
            extra={"state": self.state.value, "interval_ms": int(round(self.scheduler.interval * 1000))},
        )

    def _current_snapshot(self) -> SensorSnapshot:
        if self.snapshots is None:
            raise EngineStateError("Engine has no sensor registry yet.")
        return self.snapshots.get_all()

    def tick(self) -> SensorSnapshot:
        """Advance every channel and hand the snapshot to the hub."""
        if self.registry is None:
            raise EngineStateError("Engine has no sensor registry yet.")
        snapshot = self.registry.advance_all()
        self.last_broadcast = snapshot
        delivered = self.hub.broadcast(snapshot)
        logger.debug(
            "Broadcast sensor snapshot",
            extra={"tick": self.scheduler.tick_count, "subscriber_count": delivered},
        )
        return snapshot

    async def start(self) -> None:
        if self.state is EngineState.running:
            return
        if self.state is not EngineState.initialized:
            raise EngineStateError(f"Cannot start engine in state {self.state.value!r}.")
        self.scheduler.start()
        self.state = EngineState.running
        logger.info("Telemetry engine running", extra={"state": self.state.value})

    async def stop(self) -> None:
        if self.state is EngineState.stopped:
            return
        await self.scheduler.stop()
        await self.hub.close()
        self.state = EngineState.stopped
        logger.info("Telemetry engine stopped", extra={"state": self.state.value})

    def status(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "tick_interval_ms": int(round(self.scheduler.interval * 1000)),
            "tick_count": self.scheduler.tick_count,
            "skipped_ticks": self.scheduler.skipped_ticks,
            "failed_ticks": self.scheduler.failed_ticks,
            "subscriber_count": len(self.hub),
            "channels": describe_channels(self.registry) if self.registry is not None else [],
        }


@lru_cache
def build_default_engine() -> TelemetryEngine:
    """Factory that wires the engine from environment settings."""
    settings = get_settings()
    engine = TelemetryEngine(
        interval=settings.tick_interval,
        queue_size=settings.subscriber_queue_size,
        send_timeout=settings.subscriber_send_timeout,
    )
    engine.initialize(build_registry(settings.channels_json, seed=settings.random_seed))
    return engine
