"""Error kinds raised by the telemetry engine."""

from __future__ import annotations


class UnknownChannel(KeyError):
    """A query or advance request named a channel that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Sensor channel {self.name!r} is not registered."


class GenerationFault(ValueError):
    """Channel configuration that the random walk cannot operate on."""


class DeliveryFailure(Exception):
    """A subscriber connection could not accept a payload."""

    def __init__(self, subscriber_id: str, reason: str) -> None:
        super().__init__(f"Delivery to subscriber {subscriber_id} failed: {reason}")
        self.subscriber_id = subscriber_id
        self.reason = reason


class EngineStateError(RuntimeError):
    """An operation was attempted in a lifecycle state that forbids it."""
