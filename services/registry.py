"""Authoritative store of sensor channel state."""

from __future__ import annotations

import json
import math
from datetime import datetime
from threading import Lock
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from models.errors import GenerationFault, UnknownChannel
from models.records import Channel, ChannelSpec, Reading, SensorSnapshot, utc_now
from services.random_walk import RandomWalkGenerator, quantize, validate_bounds

DEFAULT_CHANNELS: Tuple[ChannelSpec, ...] = (
    ChannelSpec("temperature", 25.0, "°C", 15.0, 35.0),
    ChannelSpec("humidity", 60.0, "%", 30.0, 80.0),
    ChannelSpec("pressure", 1013.0, "hPa", 1000.0, 1030.0),
    ChannelSpec("carbonMonoxide", 5.0, "ppm", 0.0, 50.0),
    ChannelSpec("nitrogenDioxide", 10.0, "ppb", 0.0, 100.0),
)

_REQUIRED_SPEC_FIELDS = ("name", "value", "unit", "min", "max")


def parse_channel_specs(raw: str) -> Tuple[ChannelSpec, ...]:
    """Parse a JSON list of ``{name, value, unit, min, max}`` objects."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise GenerationFault(f"Channel configuration is not valid JSON: {exc}") from exc

    if not isinstance(data, list) or not data:
        raise GenerationFault("Channel configuration must be a non-empty JSON list.")

    specs: list[ChannelSpec] = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise GenerationFault(f"Channel entry {index} must be an object.")
        missing = [field for field in _REQUIRED_SPEC_FIELDS if field not in entry]
        if missing:
            raise GenerationFault(
                f"Channel entry {index} is missing fields: {', '.join(missing)}"
            )
        try:
            specs.append(
                ChannelSpec(
                    name=str(entry["name"]),
                    initial_value=float(entry["value"]),
                    unit=str(entry["unit"]),
                    min_value=float(entry["min"]),
                    max_value=float(entry["max"]),
                )
            )
        except (TypeError, ValueError) as exc:
            raise GenerationFault(f"Channel entry {index} has a non-numeric field.") from exc
    return tuple(specs)


def _validate_spec(spec: ChannelSpec) -> None:
    if not spec.name or not spec.name.strip():
        raise GenerationFault("Channel name must not be empty.")
    problem = validate_bounds(spec.min_value, spec.max_value)
    if problem is not None:
        raise GenerationFault(f"Channel {spec.name!r}: {problem}")
    if not math.isfinite(spec.initial_value) or not (
        spec.min_value <= spec.initial_value <= spec.max_value
    ):
        raise GenerationFault(
            f"Channel {spec.name!r}: initial value {spec.initial_value} "
            f"is outside [{spec.min_value}, {spec.max_value}]"
        )


class SensorRegistry:
    """Holds every channel and is the only writer of channel values.

    Mutation and snapshotting share one lock, so a snapshot never observes a
    half-advanced cycle.
    """

    def __init__(
        self,
        specs: Iterable[ChannelSpec] = DEFAULT_CHANNELS,
        generator: Optional[RandomWalkGenerator] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._channels: Dict[str, Channel] = {}
        for spec in specs:
            _validate_spec(spec)
            if spec.name in self._channels:
                raise GenerationFault(f"Channel {spec.name!r} is registered twice.")
            channel = Channel.from_spec(spec)
            channel.value = quantize(channel.value, channel.min_value, channel.max_value)
            self._channels[spec.name] = channel
        if not self._channels:
            raise GenerationFault("At least one channel must be registered.")
        self._generator = generator or RandomWalkGenerator()
        self._clock = clock
        self._lock = Lock()

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._channels)

    def __contains__(self, name: object) -> bool:
        return name in self._channels

    def __len__(self) -> int:
        return len(self._channels)

    def channel(self, name: str) -> Channel:
        """Return a copy of the channel's current state."""
        with self._lock:
            channel = self._lookup(name)
            return Channel(
                name=channel.name,
                value=channel.value,
                unit=channel.unit,
                min_value=channel.min_value,
                max_value=channel.max_value,
            )

    def advance_one(self, name: str) -> Reading:
        with self._lock:
            return self._advance(self._lookup(name), self._clock())

    def advance_all(self) -> SensorSnapshot:
        with self._lock:
            timestamp = self._clock()
            readings = [self._advance(channel, timestamp) for channel in self._channels.values()]
        return SensorSnapshot(timestamp=timestamp, readings=readings)

    def current_snapshot(self) -> SensorSnapshot:
        with self._lock:
            timestamp = self._clock()
            readings = [channel.reading(timestamp) for channel in self._channels.values()]
        return SensorSnapshot(timestamp=timestamp, readings=readings)

    def _lookup(self, name: str) -> Channel:
        channel = self._channels.get(name)
        if channel is None:
            raise UnknownChannel(name)
        return channel

    def _advance(self, channel: Channel, timestamp: datetime) -> Reading:
        stepped = self._generator.step(channel.value, channel.min_value, channel.max_value)
        channel.value = quantize(stepped, channel.min_value, channel.max_value)
        return channel.reading(timestamp)


def build_registry(
    channels_json: Optional[str] = None,
    seed: Optional[int] = None,
) -> SensorRegistry:
    specs = parse_channel_specs(channels_json) if channels_json else DEFAULT_CHANNELS
    return SensorRegistry(specs=specs, generator=RandomWalkGenerator.seeded(seed))


def describe_channels(registry: SensorRegistry) -> list[Dict[str, Any]]:
    """Return the static configuration of every channel, in registration order."""
    described = []
    for name in registry.names:
        channel = registry.channel(name)
        described.append(
            {
                "name": channel.name,
                "unit": channel.unit,
                "min": channel.min_value,
                "max": channel.max_value,
            }
        )
    return described
