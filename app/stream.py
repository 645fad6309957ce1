"""WebSocket push channel for sensor snapshots."""

from __future__ import annotations

from fastapi import APIRouter, Depends, WebSocket, status

from app.api import get_engine
from models.errors import EngineStateError
from services.engine import TelemetryEngine

router = APIRouter()


@router.websocket("/ws/sensors")
async def sensor_stream(
    websocket: WebSocket,
    engine: TelemetryEngine = Depends(get_engine),
) -> None:
    await websocket.accept()
    try:
        subscriber_id = await engine.hub.join(websocket)
    except EngineStateError:
        await websocket.close(code=status.WS_1001_GOING_AWAY)
        return

    try:
        # Client messages carry nothing; reading only detects the disconnect.
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        engine.hub.leave(subscriber_id)
