"""Tests for channel state management in the sensor registry."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timedelta, timezone

import pytest

from models.errors import GenerationFault, UnknownChannel
from models.records import ChannelSpec
from services.random_walk import RandomWalkGenerator
from services.registry import (
    DEFAULT_CHANNELS,
    SensorRegistry,
    build_registry,
    describe_channels,
    parse_channel_specs,
)
from services.snapshot import SnapshotService


class StepClock:
    """Clock that moves forward one second per call."""

    def __init__(self) -> None:
        self.current = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.calls = 0

    def __call__(self) -> datetime:
        self.calls += 1
        self.current += timedelta(seconds=1)
        return self.current


def _registry(seed: int = 7, **kwargs) -> SensorRegistry:
    return SensorRegistry(generator=RandomWalkGenerator.seeded(seed), **kwargs)


def _has_one_decimal_at_most(value: float) -> bool:
    return round(value, 1) == value


def test_default_channels_registered_in_order() -> None:
    registry = _registry()

    assert registry.names == (
        "temperature",
        "humidity",
        "pressure",
        "carbonMonoxide",
        "nitrogenDioxide",
    )
    assert "temperature" in registry
    assert "unknown" not in registry


def test_advance_one_stays_within_bounds_for_every_call() -> None:
    registry = _registry()

    for spec in DEFAULT_CHANNELS:
        for _ in range(500):
            reading = registry.advance_one(spec.name)
            assert spec.min_value <= reading.value <= spec.max_value
            assert _has_one_decimal_at_most(reading.value)
            assert reading.unit == spec.unit


def test_advance_one_unknown_channel_raises() -> None:
    registry = _registry()

    with pytest.raises(UnknownChannel) as excinfo:
        registry.advance_one("unknown")

    assert excinfo.value.name == "unknown"
    assert isinstance(excinfo.value, KeyError)


def test_advance_all_shares_single_timestamp() -> None:
    clock = StepClock()
    registry = _registry(clock=clock)

    snapshot = registry.advance_all()

    assert list(snapshot) == list(registry.names)
    assert len(snapshot) == len(registry)
    assert {reading.timestamp for reading in snapshot.values()} == {snapshot.timestamp}
    assert clock.calls == 1


def test_current_snapshot_does_not_mutate() -> None:
    registry = _registry()
    registry.advance_all()

    first = registry.current_snapshot()
    second = registry.current_snapshot()

    assert first.values_by_name() == second.values_by_name()


def test_current_snapshot_uses_query_time() -> None:
    clock = StepClock()
    registry = _registry(clock=clock)

    generated = registry.advance_all()
    queried = registry.current_snapshot()

    assert queried.timestamp > generated.timestamp
    assert queried.values_by_name() == generated.values_by_name()


def test_initial_snapshot_reports_configured_values() -> None:
    registry = _registry()

    snapshot = registry.current_snapshot()

    assert snapshot.values_by_name() == {
        "temperature": 25.0,
        "humidity": 60.0,
        "pressure": 1013.0,
        "carbonMonoxide": 5.0,
        "nitrogenDioxide": 10.0,
    }


def test_thousand_cycles_stay_bounded_and_keep_moving() -> None:
    registry = _registry(seed=2024)
    bounds = {spec.name: (spec.min_value, spec.max_value) for spec in DEFAULT_CHANNELS}

    previous = registry.current_snapshot().values_by_name()
    identical_pairs = 0
    for _ in range(1000):
        snapshot = registry.advance_all()
        values = snapshot.values_by_name()
        for name, value in values.items():
            low, high = bounds[name]
            assert low <= value <= high
            assert _has_one_decimal_at_most(value)
        if values == previous:
            identical_pairs += 1
        previous = values

    assert identical_pairs < 10


def test_registry_is_consistent_under_concurrent_access() -> None:
    registry = _registry()
    errors: list[BaseException] = []

    def writer() -> None:
        try:
            for _ in range(300):
                registry.advance_all()
        except BaseException as exc:  # pragma: no cover - surfaced by the assertion
            errors.append(exc)

    def reader() -> None:
        try:
            for _ in range(300):
                snapshot = registry.current_snapshot()
                assert len(snapshot) == len(registry)
                assert {reading.timestamp for reading in snapshot.values()} == {snapshot.timestamp}
        except BaseException as exc:  # pragma: no cover - surfaced by the assertion
            errors.append(exc)

    threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []


@pytest.mark.parametrize(
    "spec",
    [
        ChannelSpec("broken", 5.0, "x", 10.0, 10.0),
        ChannelSpec("inverted", 5.0, "x", 10.0, 0.0),
        ChannelSpec("outside", 50.0, "x", 0.0, 10.0),
        ChannelSpec("", 5.0, "x", 0.0, 10.0),
    ],
)
def test_invalid_channel_configuration_is_rejected(spec: ChannelSpec) -> None:
    with pytest.raises(GenerationFault):
        SensorRegistry(specs=[spec])


def test_duplicate_channel_names_are_rejected() -> None:
    spec = ChannelSpec("temperature", 20.0, "°C", 15.0, 35.0)

    with pytest.raises(GenerationFault):
        SensorRegistry(specs=[spec, spec])


def test_empty_registry_is_rejected() -> None:
    with pytest.raises(GenerationFault):
        SensorRegistry(specs=[])


def test_snapshot_service_get_all_is_read_only() -> None:
    service = SnapshotService(_registry())

    before = service.get_all().values_by_name()
    after = service.get_all().values_by_name()

    assert before == after


def test_snapshot_service_get_one_advances_only_that_channel() -> None:
    registry = _registry()
    service = SnapshotService(registry)
    before = service.get_all().values_by_name()

    reading = service.get_one("temperature")

    after = service.get_all().values_by_name()
    assert after["temperature"] == reading.value
    assert {name: value for name, value in after.items() if name != "temperature"} == {
        name: value for name, value in before.items() if name != "temperature"
    }
    with pytest.raises(UnknownChannel):
        service.get_one("unknown")


def test_parse_channel_specs() -> None:
    raw = json.dumps(
        [
            {"name": "temperature", "value": 20, "unit": "°C", "min": 10, "max": 30},
            {"name": "noise", "value": 40.5, "unit": "dB", "min": 30, "max": 90},
        ]
    )

    specs = parse_channel_specs(raw)

    assert specs == (
        ChannelSpec("temperature", 20.0, "°C", 10.0, 30.0),
        ChannelSpec("noise", 40.5, "dB", 30.0, 90.0),
    )


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "{}",
        "[]",
        '[{"name": "x", "value": 1, "unit": "u", "min": 0}]',
        '[{"name": "x", "value": "abc", "unit": "u", "min": 0, "max": 2}]',
        '["temperature"]',
    ],
)
def test_parse_channel_specs_rejects_malformed_input(raw: str) -> None:
    with pytest.raises(GenerationFault):
        parse_channel_specs(raw)


def test_build_registry_uses_custom_channels_and_seed() -> None:
    raw = '[{"name": "noise", "value": 40, "unit": "dB", "min": 30, "max": 90}]'

    first = build_registry(raw, seed=3)
    second = build_registry(raw, seed=3)

    assert first.names == ("noise",)
    assert [first.advance_one("noise").value for _ in range(10)] == [
        second.advance_one("noise").value for _ in range(10)
    ]


def test_describe_channels() -> None:
    described = describe_channels(_registry())

    assert described[0] == {"name": "temperature", "unit": "°C", "min": 15.0, "max": 35.0}
    assert [item["name"] for item in described] == list(_registry().names)
