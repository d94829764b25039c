"""
Event evaluator: derives every stage's GroupResult and the event result
from the raw values held in an EventSnapshot.

Leaf stages are scored from raw values with the results of their preceding
siblings; composite stages and the event itself aggregate their children.
Evaluation is pure, so the same snapshot always yields the same results.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from multisport_scoring.exceptions import NotFoundError
from multisport_scoring.scoring.base import (
    EventScoringInfo,
    ScoringMethod,
    StageScoringInfo,
)
from multisport_scoring.scoring.registry import ScoringMethodRegistry
from multisport_scoring.scoring.results import GroupResult, compute_group_result
from .snapshot import EventSnapshot, StageNode

logger = logging.getLogger(__name__)


@dataclass
class EventScores:
    """All stage results of an event plus the event-level result."""
    event_id: str
    stage_results: Dict[str, GroupResult] = field(default_factory=dict)
    event_result: GroupResult = field(default_factory=GroupResult)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "eventId": self.event_id,
            "stageResults": {stage_id: result.to_dict() for stage_id, result in self.stage_results.items()},
            "eventResult": self.event_result.to_dict(),
        }


class EventEvaluator:
    """
    Computes stage and event results for one snapshot.

    Results are memoized per stage; call ``invalidate`` after the snapshot's
    raw values change.
    """

    def __init__(self, snapshot: EventSnapshot, registry: ScoringMethodRegistry):
        self.snapshot = snapshot
        self.registry = registry
        self._results: Dict[str, GroupResult] = {}

    def invalidate(self):
        self._results.clear()

    def method_for_stage(self, stage: StageNode) -> ScoringMethod:
        if not stage.scoring_method:
            raise NotFoundError("ScoreFormat", f"stage {stage.id}")
        return self.registry.get(stage.scoring_method)

    def event_method(self) -> ScoringMethod:
        if not self.snapshot.event_scoring_method:
            raise NotFoundError("ScoreFormat", f"event {self.snapshot.event_id}")
        return self.registry.get(self.snapshot.event_scoring_method)

    def stage_result(self, stage_id: str) -> GroupResult:
        """GroupResult of one stage, computing preceding siblings first."""
        if stage_id in self._results:
            return self._results[stage_id]

        stage = self.snapshot.stage(stage_id)
        if self.snapshot.is_composite(stage_id):
            result = self._aggregate_composite(stage)
        else:
            previous = [self.stage_result(sibling.id) for sibling in self.snapshot.siblings_before(stage_id)]
            result = self._score_leaf(stage, previous)

        self._results[stage_id] = result
        return result

    def event_result(self) -> GroupResult:
        """Aggregate of the top-level stages (nested stages count through their parent)."""
        stages = self.snapshot.top_level_stages()
        results = [self.stage_result(stage.id) for stage in stages]
        return self._aggregate(self.event_method(), stages, results)

    def evaluate(self) -> EventScores:
        stage_results = {
            stage.id: self.stage_result(stage.id) for stage in self.snapshot.ordered_stages()
        }
        return EventScores(
            event_id=self.snapshot.event_id,
            stage_results=stage_results,
            event_result=self.event_result(),
        )

    def _score_leaf(self, stage: StageNode, previous: List[GroupResult]) -> GroupResult:
        method = self.method_for_stage(stage)
        values = self.snapshot.values_for(stage.id)
        point_sums, point_averages = self._point_sums(method, values)

        info = StageScoringInfo(
            values=values,
            previous_stage_results=previous,
            stage=stage.info(),
            event=self.snapshot.event_info(),
            point_sums=point_sums,
            point_averages=point_averages,
        )
        simple = method.score_stage(info)

        logger.debug(f"Scored stage {stage.id} ({method.name}) for {len(values)} participants")
        return compute_group_result(simple, method.higher_points_better, values)

    @staticmethod
    def _point_sums(method: ScoringMethod, values: Dict[str, Any]) -> Tuple[Dict[str, float], Dict[str, float]]:
        """Sums and averages of value_to_points over this stage's values.

        Only the stage's own values count, so a non-propagating method never
        derives anything from its earlier siblings.
        """
        sums: Dict[str, float] = {}
        counts: Dict[str, int] = {}
        for pid, value in values.items():
            if not method.validate_value(value):
                continue
            sums[pid] = sums.get(pid, 0.0) + float(method.value_to_points(value))
            counts[pid] = counts.get(pid, 0) + 1
        averages = {pid: sums[pid] / counts[pid] for pid in sums}
        return sums, averages

    def _aggregate_composite(self, stage: StageNode) -> GroupResult:
        children = self.snapshot.children_of(stage.id)
        results = [self.stage_result(child.id) for child in children]
        return self._aggregate(self.method_for_stage(stage), children, results, parent=stage)

    def _aggregate(self, method: ScoringMethod, stages: List[StageNode], results: List[GroupResult],
                   parent: Optional[StageNode] = None) -> GroupResult:
        point_sums: Dict[str, float] = {}
        for result in results:
            for pid, participant in result.participant_results.items():
                point_sums[pid] = point_sums.get(pid, 0.0) + participant.points

        info = EventScoringInfo(
            stage_results=results,
            stages=[stage.info() for stage in stages],
            event=self.snapshot.event_info(),
            point_sums=point_sums,
            parent=parent.info() if parent else None,
        )
        simple = method.score_event(info)
        return compute_group_result(simple, method.higher_points_better)
