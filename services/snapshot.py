"""Read access to sensor state for pull-style queries."""

from __future__ import annotations

from models.records import Reading, SensorSnapshot
from services.registry import SensorRegistry


class SnapshotService:

    def __init__(self, registry: SensorRegistry) -> None:
        self._registry = registry

    def get_all(self) -> SensorSnapshot:
        """Current values of every channel; does not advance state."""
        return self._registry.current_snapshot()

    def get_one(self, name: str) -> Reading:
        """Advance and return a single channel, mirroring the one-sensor endpoint."""
        return self._registry.advance_one(name)
