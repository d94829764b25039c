"""
Scoring method abstraction and group result computation.

Provides:
- ScoringMethod: pluggable per-sport scoring behavior
- ScoringMethodRegistry: process-wide name -> method lookup
- compute_group_result: tie-aware competition ranking of one group
- Built-in methods for golf, tennis, timed and points-based sports
"""

from .results import SimpleResult, ParticipantResult, GroupResult, compute_group_result
from .base import ScoringMethod, StageInfo, EventInfo, StageScoringInfo, EventScoringInfo
from .registry import ScoringMethodRegistry, registry
from .statistics import summarize_points
from .transform import OffsetClampAndScale, offset_clamp_and_scale
from .methods import builtin_methods, register_builtin_methods

__all__ = [
    "SimpleResult",
    "ParticipantResult",
    "GroupResult",
    "compute_group_result",
    "ScoringMethod",
    "StageInfo",
    "EventInfo",
    "StageScoringInfo",
    "EventScoringInfo",
    "ScoringMethodRegistry",
    "registry",
    "summarize_points",
    "OffsetClampAndScale",
    "offset_clamp_and_scale",
    "builtin_methods",
    "register_builtin_methods",
]
