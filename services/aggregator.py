"""Aggregation logic for locally buffered sensor readings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable

from models.records import Reading


@dataclass
class ChannelSummary:
    """Computed statistics for one channel's readings."""

    unit: str
    count: int = 0
    min_value: float | None = None
    max_value: float | None = None
    mean_value: float | None = None
    total: float = 0.0


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def aggregate(self, readings: Iterable[Reading]) -> Dict[str, ChannelSummary]:
        summaries: Dict[str, ChannelSummary] = {}

        for reading in readings:
            summary = summaries.get(reading.name)
            if summary is None:
                summary = summaries[reading.name] = ChannelSummary(unit=reading.unit)

            value = reading.value
            summary.count += 1
            summary.total += value

            if summary.min_value is None or value < summary.min_value:
                summary.min_value = value
            if summary.max_value is None or value > summary.max_value:
                summary.max_value = value

        for summary in summaries.values():
            if summary.count:
                summary.mean_value = round(summary.total / summary.count, 2)

        return summaries
