"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from services.alerts import AlertSeverity


class SensorReadingResponse(BaseModel):
    """One channel's reading as exposed by the pull endpoints."""

    value: float = Field(..., description="Reading rounded to one decimal place.")
    unit: str
    timestamp: str = Field(..., description="ISO-8601 instant the reading was generated.")


class ErrorResponse(BaseModel):
    error: str


class AlertResponse(BaseModel):
    channel: str
    severity: AlertSeverity
    message: str
    value: float


class AlertsResponse(BaseModel):
    """Alerts raised by the current snapshot."""

    timestamp: str
    alerts: List[AlertResponse] = Field(default_factory=list)


class ChannelDescription(BaseModel):
    name: str
    unit: str
    min: float
    max: float


class EngineStatusResponse(BaseModel):
    """Lifecycle and throughput counters of the broadcast engine."""

    state: str
    tick_interval_ms: int = Field(..., gt=0)
    tick_count: int = Field(..., ge=0)
    skipped_ticks: int = Field(..., ge=0)
    failed_ticks: int = Field(..., ge=0)
    subscriber_count: int = Field(..., ge=0)
    channels: List[ChannelDescription] = Field(default_factory=list)
