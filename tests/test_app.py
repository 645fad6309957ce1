from datetime import datetime
from typing import Iterator, List

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from models.records import parse_timestamp
from services.engine import EngineState, TelemetryEngine, build_default_engine
from services.random_walk import RandomWalkGenerator
from services.registry import SensorRegistry

CHANNELS = ["temperature", "humidity", "pressure", "carbonMonoxide", "nitrogenDioxide"]


def _install_engine(monkeypatch, interval: float) -> List[TelemetryEngine]:
    engines: List[TelemetryEngine] = []

    def build_test_engine() -> TelemetryEngine:
        if not engines:
            registry = SensorRegistry(generator=RandomWalkGenerator.seeded(5))
            engines.append(TelemetryEngine(registry, interval=interval, send_timeout=1.0))
        return engines[0]

    def cache_clear() -> None:
        pass

    build_test_engine.cache_clear = cache_clear  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_engine", build_test_engine)
    monkeypatch.setattr("app.api.build_default_engine", build_test_engine)
    return engines


@pytest.fixture
def api_client(monkeypatch) -> Iterator[TestClient]:
    _install_engine(monkeypatch, interval=2.0)
    app = create_app()
    with TestClient(app) as client:
        yield client


def test_lifespan_starts_and_stops_engine(monkeypatch) -> None:
    engines = _install_engine(monkeypatch, interval=2.0)
    app = create_app()

    with TestClient(app) as client:
        assert client.get("/health").json() == {"status": "ok"}
        engine = engines[0]
        assert engine.state is EngineState.running
        assert engine.scheduler.running is True

    assert engine.state is EngineState.stopped
    assert engine.scheduler.running is False
    assert engine.hub.closed is True


def test_lifespan_clears_default_engine_cache() -> None:
    app = create_app()

    with TestClient(app):
        engine_during = build_default_engine()
        assert engine_during.state is EngineState.running

    engine_after = build_default_engine()
    try:
        assert engine_after is not engine_during
        assert engine_during.state is EngineState.stopped
        assert engine_after.state is EngineState.initialized
    finally:
        build_default_engine.cache_clear()


def test_list_sensors_returns_every_channel(api_client: TestClient) -> None:
    response = api_client.get("/api/sensors")

    assert response.status_code == 200
    payload = response.json()
    assert list(payload) == CHANNELS
    assert payload["temperature"]["unit"] == "°C"
    for reading in payload.values():
        assert set(reading) == {"value", "unit", "timestamp"}
        assert reading["timestamp"].endswith("Z")
        assert isinstance(parse_timestamp(reading["timestamp"]), datetime)


def test_list_sensors_does_not_advance_state(api_client: TestClient) -> None:
    first = api_client.get("/api/sensors").json()
    second = api_client.get("/api/sensors").json()

    assert {name: item["value"] for name, item in first.items()} == {
        name: item["value"] for name, item in second.items()
    }


def test_get_temperature_within_bounds(api_client: TestClient) -> None:
    for _ in range(20):
        response = api_client.get("/api/sensors/temperature")
        assert response.status_code == 200
        payload = response.json()
        assert 15 <= payload["value"] <= 35
        assert payload["unit"] == "°C"
        assert round(payload["value"], 1) == payload["value"]


def test_get_unknown_sensor_returns_not_found(api_client: TestClient) -> None:
    response = api_client.get("/api/sensors/unknown")

    assert response.status_code == 404
    assert response.json() == {"error": "Sensor not found"}


def test_alerts_endpoint_reports_nominal_defaults(api_client: TestClient) -> None:
    response = api_client.get("/api/alerts")

    assert response.status_code == 200
    payload = response.json()
    assert payload["alerts"] == []
    assert payload["timestamp"].endswith("Z")


def test_status_endpoint(api_client: TestClient) -> None:
    response = api_client.get("/api/status")

    assert response.status_code == 200
    payload = response.json()
    assert payload["state"] == "running"
    assert payload["tick_interval_ms"] == 2000
    assert payload["subscriber_count"] == 0
    assert [channel["name"] for channel in payload["channels"]] == CHANNELS


def test_root_mirrors_health(api_client: TestClient) -> None:
    response = api_client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_websocket_receives_snapshot_on_connect(api_client: TestClient) -> None:
    with api_client.websocket_connect("/ws/sensors") as websocket:
        message = websocket.receive_json()

    assert message["event"] == "sensor-data"
    assert list(message["data"]) == CHANNELS
    assert message["data"]["pressure"]["unit"] == "hPa"
    assert 1000 <= message["data"]["pressure"]["value"] <= 1030


def test_websocket_receives_tick_broadcasts(monkeypatch) -> None:
    engines = _install_engine(monkeypatch, interval=0.05)
    app = create_app()

    with TestClient(app) as client:
        with client.websocket_connect("/ws/sensors") as websocket:
            first = websocket.receive_json()
            second = websocket.receive_json()
            third = websocket.receive_json()
            assert engines[0].status()["subscriber_count"] == 1

    for message in (first, second, third):
        assert message["event"] == "sensor-data"
        assert list(message["data"]) == CHANNELS
    tick_timestamps = {reading["timestamp"] for reading in second["data"].values()}
    assert len(tick_timestamps) == 1


def test_websocket_disconnect_removes_subscriber(api_client: TestClient) -> None:
    with api_client.websocket_connect("/ws/sensors") as websocket:
        websocket.receive_json()
        assert api_client.get("/api/status").json()["subscriber_count"] == 1

    assert api_client.get("/api/status").json()["subscriber_count"] == 0
