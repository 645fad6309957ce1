"""Domain models shared across services."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render an aware datetime as ISO-8601 with a ``Z`` suffix and milliseconds."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def parse_timestamp(value: str) -> datetime:
    candidate = value.strip()
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    parsed = datetime.fromisoformat(candidate)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class ChannelSpec:
    """Startup configuration for one sensor channel."""

    name: str
    initial_value: float
    unit: str
    min_value: float
    max_value: float


@dataclass(slots=True)
class Channel:
    """Mutable state of one sensor stream, owned by the registry."""

    name: str
    value: float
    unit: str
    min_value: float
    max_value: float

    @classmethod
    def from_spec(cls, spec: ChannelSpec) -> "Channel":
        return cls(
            name=spec.name,
            value=float(spec.initial_value),
            unit=spec.unit,
            min_value=float(spec.min_value),
            max_value=float(spec.max_value),
        )

    def reading(self, timestamp: datetime) -> "Reading":
        return Reading(
            name=self.name,
            value=round(self.value, 1),
            unit=self.unit,
            timestamp=timestamp,
        )


@dataclass(frozen=True, slots=True)
class Reading:
    """A single timestamped measurement of a channel."""

    name: str
    value: float
    unit: str
    timestamp: datetime

    def to_payload(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "unit": self.unit,
            "timestamp": format_timestamp(self.timestamp),
        }

    @classmethod
    def from_payload(cls, name: str, payload: Mapping[str, Any]) -> "Reading":
        return cls(
            name=name,
            value=float(payload["value"]),
            unit=str(payload["unit"]),
            timestamp=parse_timestamp(str(payload["timestamp"])),
        )


class SensorSnapshot(Mapping):
    """Read-only mapping of channel name to reading for one generation cycle."""

    __slots__ = ("_readings", "timestamp")

    def __init__(self, timestamp: datetime, readings: Iterable[Reading]) -> None:
        self.timestamp = timestamp
        self._readings: Dict[str, Reading] = {}
        for reading in readings:
            if reading.name in self._readings:
                raise ValueError(f"Duplicate reading for channel {reading.name!r}.")
            self._readings[reading.name] = reading

    def __getitem__(self, name: str) -> Reading:
        return self._readings[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._readings)

    def __len__(self) -> int:
        return len(self._readings)

    def __repr__(self) -> str:
        values = ", ".join(f"{name}={reading.value}" for name, reading in self._readings.items())
        return f"SensorSnapshot({format_timestamp(self.timestamp)}: {values})"

    def values_by_name(self) -> Dict[str, float]:
        return {name: reading.value for name, reading in self._readings.items()}

    def to_payload(self) -> Dict[str, Dict[str, Any]]:
        return {name: reading.to_payload() for name, reading in self._readings.items()}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Mapping[str, Any]]) -> "SensorSnapshot":
        readings = [Reading.from_payload(name, item) for name, item in payload.items()]
        timestamp = max((reading.timestamp for reading in readings), default=utc_now())
        return cls(timestamp=timestamp, readings=readings)
