"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from app.schemas import (
    AlertResponse,
    AlertsResponse,
    EngineStatusResponse,
    ErrorResponse,
    SensorReadingResponse,
)
from models.records import format_timestamp
from services.alerts import evaluate
from services.engine import TelemetryEngine, build_default_engine

router = APIRouter()


def get_engine() -> TelemetryEngine:
    return build_default_engine()


@router.get(
    "/api/sensors",
    response_model=Dict[str, SensorReadingResponse],
    summary="Current reading of every sensor channel.",
)
async def list_sensors(
    engine: TelemetryEngine = Depends(get_engine),
) -> Dict[str, Dict[str, Any]]:
    return engine.snapshots.get_all().to_payload()


@router.get(
    "/api/sensors/{name}",
    response_model=SensorReadingResponse,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
    summary="Generate and return a fresh reading for one sensor channel.",
)
async def get_sensor(
    name: str,
    engine: TelemetryEngine = Depends(get_engine),
) -> Dict[str, Any]:
    # UnknownChannel is translated to a 404 by the application exception handler.
    return engine.snapshots.get_one(name).to_payload()


@router.get(
    "/api/alerts",
    response_model=AlertsResponse,
    summary="Threshold alerts raised by the current readings.",
)
async def list_alerts(
    engine: TelemetryEngine = Depends(get_engine),
) -> AlertsResponse:
    snapshot = engine.snapshots.get_all()
    alerts = [
        AlertResponse(
            channel=alert.channel,
            severity=alert.severity,
            message=alert.message,
            value=alert.value,
        )
        for alert in evaluate(snapshot)
    ]
    return AlertsResponse(timestamp=format_timestamp(snapshot.timestamp), alerts=alerts)


@router.get(
    "/api/status",
    response_model=EngineStatusResponse,
    summary="Engine lifecycle state and broadcast counters.",
)
async def engine_status(
    engine: TelemetryEngine = Depends(get_engine),
) -> Dict[str, Any]:
    return engine.status()


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
