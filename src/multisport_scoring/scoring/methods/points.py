"""Generic points scoring (trivia, darts, judged events)."""

from typing import Any, Optional

from ..base import ScoringMethod
from ..transform import OffsetClampAndScale


class PointsMethod(ScoringMethod):
    """
    Numeric points, optionally mapped through an offset/clamp/scale.

    The default instance is registered as ``points``; sports needing a
    different mapping or direction register their own instance under a
    different name.
    """

    description = "Numeric points per stage, summed for the event"

    def __init__(self, name: str = "points", mapping: Optional[OffsetClampAndScale] = None,
                 higher_points_better: bool = True):
        self.name = name
        self.mapping = mapping or OffsetClampAndScale()
        self.higher_points_better = higher_points_better

    def value_to_points(self, value: Any) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"Points must be numeric, got {value!r}")
        return self.mapping.apply(float(value))
