"""Numeric value mapping helpers shared by configurable scoring methods."""

import math
from dataclasses import dataclass


def clamp(value: float, minimum: float = -math.inf, maximum: float = math.inf) -> float:
    return max(min(value, maximum), minimum)


@dataclass(frozen=True)
class OffsetClampAndScale:
    """Shift a value, clamp it into [min, max], then scale it."""
    offset: float = 0.0
    min: float = -math.inf
    max: float = math.inf
    scale: float = 1.0

    def apply(self, value: float) -> float:
        return offset_clamp_and_scale(value, self.offset, self.min, self.max, self.scale)


def offset_clamp_and_scale(value: float, offset: float = 0.0, minimum: float = -math.inf,
                           maximum: float = math.inf, scale: float = 1.0) -> float:
    return clamp(value + offset, minimum, maximum) * scale
