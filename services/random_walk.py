"""Bounded random walk used to advance sensor channels."""

from __future__ import annotations

import math
import random
from typing import Optional

from models.errors import GenerationFault

STEP_SPAN = 1.0


def clamp(value: float, min_value: float, max_value: float) -> float:
    if value < min_value:
        return min_value
    if value > max_value:
        return max_value
    return value


def quantize(value: float, min_value: float, max_value: float) -> float:
    """Round to one decimal place without leaving ``[min_value, max_value]``."""
    rounded = round(value, 1)
    if rounded > max_value:
        return math.floor(max_value * 10) / 10
    if rounded < min_value:
        return math.ceil(min_value * 10) / 10
    return rounded


def validate_bounds(min_value: float, max_value: float) -> Optional[str]:
    """Return a description of what is wrong with the bounds, if anything."""
    if not (math.isfinite(min_value) and math.isfinite(max_value)):
        return "bounds must be finite numbers"
    if min_value >= max_value:
        return f"min ({min_value}) must be lower than max ({max_value})"
    if math.ceil(min_value * 10) > math.floor(max_value * 10):
        return "bounds must contain at least one value with one decimal place"
    return None


class RandomWalkGenerator:
    """Produces the next channel value from its current value and bounds.

    Each step draws a perturbation uniformly from ``[-1.0, +1.0)`` and clamps
    the sum into the bounds. Clamping saturates: a value pinned at a bound
    stays there until a draw pulls it back inside.
    """

    def __init__(self, rng: Optional[random.Random] = None, span: float = STEP_SPAN) -> None:
        self._rng = rng or random.Random()
        self.span = span

    @classmethod
    def seeded(cls, seed: Optional[int]) -> "RandomWalkGenerator":
        return cls(rng=random.Random(seed))

    def draw(self) -> float:
        return (self._rng.random() * 2.0 - 1.0) * self.span

    def step(self, current: float, min_value: float, max_value: float) -> float:
        problem = validate_bounds(min_value, max_value)
        if problem is not None:
            raise GenerationFault(problem)
        return clamp(current + self.draw(), min_value, max_value)
