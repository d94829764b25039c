"""
Scoring method interface.

A scoring method interprets the raw values of one sport. The engine only
ever talks to a method through this interface: ``value_to_points`` and
``validate_value`` are mandatory capabilities, ``score_stage`` and
``score_event`` have default implementations that methods override when a
stage or event needs custom ranking logic.
"""

import math
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .results import GroupResult, SimpleResult

logger = logging.getLogger(__name__)


@dataclass
class StageInfo:
    """Read-only view of one stage handed to scoring methods."""
    id: str
    name: Optional[str]
    number: int
    parent_id: Optional[str] = None
    # Template, venue and event stage metadata merged in that order
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class EventInfo:
    """Read-only view of the event handed to scoring methods."""
    id: str
    name: Optional[str]
    participant_ids: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class StageScoringInfo:
    """Everything a method may use to score one leaf stage."""
    values: Dict[str, Any]
    previous_stage_results: List[GroupResult]
    stage: StageInfo
    event: EventInfo
    # value_to_points over this stage's values only; anything carried over
    # from earlier stages must come from previous_stage_results
    point_sums: Dict[str, float] = field(default_factory=dict)
    point_averages: Dict[str, float] = field(default_factory=dict)


@dataclass
class EventScoringInfo:
    """Everything a method may use to aggregate stage results.

    Used for the event itself and for composite stages (``parent`` is then
    the composite stage whose children are being aggregated).
    """
    stage_results: List[GroupResult]
    stages: List[StageInfo]
    event: EventInfo
    # Sum of stage points per participant over the stages they appear in
    point_sums: Dict[str, float] = field(default_factory=dict)
    parent: Optional[StageInfo] = None


class ScoringMethod(ABC):
    """
    Base class for scoring methods.

    Subclasses set ``name`` and the two behavior flags and implement
    ``value_to_points``.
    """

    name: str = ""
    description: str = ""
    higher_points_better: bool = True
    propagates_to_sibling_stages: bool = False

    @abstractmethod
    def value_to_points(self, value: Any) -> float:
        """Convert one raw value into a point contribution."""
        pass

    def validate_value(self, value: Any) -> bool:
        """Accept a value when it converts to finite points."""
        if value is None or isinstance(value, bool):
            return False
        try:
            points = float(self.value_to_points(value))
        except (TypeError, ValueError, KeyError, AttributeError):
            return False
        return math.isfinite(points)

    def score_stage(self, info: StageScoringInfo) -> SimpleResult:
        """Default stage scoring: every value mapped straight to points."""
        return SimpleResult(
            points={pid: float(self.value_to_points(value)) for pid, value in info.values.items()}
        )

    def score_event(self, info: EventScoringInfo) -> SimpleResult:
        """Default aggregation: per-participant sum of stage points."""
        return SimpleResult(points=dict(info.point_sums))

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "higher_points_better": self.higher_points_better,
            "propagates_to_sibling_stages": self.propagates_to_sibling_stages,
        }

    def __repr__(self):
        return f"<{type(self).__name__}(name='{self.name}')>"
