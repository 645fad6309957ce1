"""Threshold alerts evaluated against sensor snapshots."""

from __future__ import annotations

import operator
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Mapping, Optional, Tuple

from models.records import Reading


class AlertSeverity(str, Enum):
    warning = "warning"
    critical = "critical"


@dataclass(frozen=True)
class Alert:
    channel: str
    severity: AlertSeverity
    message: str
    value: float


@dataclass(frozen=True)
class AlertRule:
    """Raise an alert when ``value <op> threshold`` holds for one channel."""

    channel: str
    comparison: str
    threshold: float
    severity: AlertSeverity
    template: str

    _OPERATORS = {">": operator.gt, "<": operator.lt, ">=": operator.ge, "<=": operator.le}

    def __post_init__(self) -> None:
        if self.comparison not in self._OPERATORS:
            raise ValueError(f"Unsupported comparison {self.comparison!r}.")

    @property
    def _compare(self) -> Callable[[float, float], bool]:
        return self._OPERATORS[self.comparison]

    def check(self, reading: Reading) -> Optional[Alert]:
        if reading.name != self.channel:
            return None
        if not self._compare(reading.value, self.threshold):
            return None
        return Alert(
            channel=self.channel,
            severity=self.severity,
            message=self.template.format(value=reading.value, unit=reading.unit),
            value=reading.value,
        )


DEFAULT_RULES: Tuple[AlertRule, ...] = (
    AlertRule("temperature", ">", 30.0, AlertSeverity.warning, "High temperature: {value}{unit}"),
    AlertRule("temperature", "<", 18.0, AlertSeverity.warning, "Low temperature: {value}{unit}"),
    AlertRule("humidity", "<", 40.0, AlertSeverity.warning, "Low humidity: {value}{unit}"),
    AlertRule("carbonMonoxide", ">", 10.0, AlertSeverity.critical, "High CO: {value} {unit}"),
    AlertRule("nitrogenDioxide", ">", 50.0, AlertSeverity.warning, "High NO2: {value} {unit}"),
)


def evaluate(
    readings: Mapping[str, Reading],
    rules: Iterable[AlertRule] = DEFAULT_RULES,
) -> List[Alert]:
    """Return the alerts raised by ``rules``; rules for absent channels are skipped."""
    alerts: List[Alert] = []
    for rule in rules:
        reading = readings.get(rule.channel)
        if reading is None:
            continue
        alert = rule.check(reading)
        if alert is not None:
            alerts.append(alert)
    return alerts
