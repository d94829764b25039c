"""
Built-in scoring methods.

``register_builtin_methods`` installs one instance of each into a registry
at sport-registration time.
"""

from typing import List

from ..base import ScoringMethod
from ..registry import ScoringMethodRegistry
from .golf import StrokePlayMethod, MatchPlayMethod, CumulativeStrokesMethod
from .timing import TimedMethod
from .points import PointsMethod
from .tennis import TennisGameMethod, TennisSetMethod, TennisMatchMethod


def builtin_methods() -> List[ScoringMethod]:
    return [
        StrokePlayMethod(),
        MatchPlayMethod(),
        CumulativeStrokesMethod(),
        TimedMethod(),
        PointsMethod(),
        TennisGameMethod(),
        TennisSetMethod(),
        TennisMatchMethod(),
    ]


def register_builtin_methods(registry: ScoringMethodRegistry) -> ScoringMethodRegistry:
    for method in builtin_methods():
        if method.name not in registry:
            registry.register(method)
    return registry


__all__ = [
    "builtin_methods",
    "register_builtin_methods",
    "StrokePlayMethod",
    "MatchPlayMethod",
    "CumulativeStrokesMethod",
    "TimedMethod",
    "PointsMethod",
    "TennisGameMethod",
    "TennisSetMethod",
    "TennisMatchMethod",
]
