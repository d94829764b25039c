"""
In-memory snapshot of one event's structure and scores.

Stages are kept as a flat id -> node map with children looked up by parent
id, so trees of any depth (flat golf holes, tennis sets of games) are
handled the same way.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from multisport_scoring.exceptions import NotFoundError
from multisport_scoring.scoring.base import EventInfo, StageInfo


@dataclass
class ScoreRow:
    """One persisted score row as seen by the engine."""
    participant_id: str
    value: Any = None
    points: Optional[float] = None
    won: bool = False
    lost: bool = False
    tied: bool = False
    completed_at: Optional[datetime] = None
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass
class StageNode:
    """One event stage with its resolved scoring method name."""
    id: str
    number: int
    name: Optional[str] = None
    parent_id: Optional[str] = None
    venue_stage_id: Optional[str] = None
    score_format_id: Optional[str] = None
    scoring_method: Optional[str] = None
    # Template, venue and event stage metadata merged in that order
    metadata: Dict[str, Any] = field(default_factory=dict)

    def info(self) -> StageInfo:
        return StageInfo(
            id=self.id,
            name=self.name,
            number=self.number,
            parent_id=self.parent_id,
            metadata=dict(self.metadata),
        )


@dataclass
class EventSnapshot:
    """Structure and raw values of one event, loaded in a single pass."""
    event_id: str
    name: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    participant_ids: List[str] = field(default_factory=list)
    event_score_format_id: Optional[str] = None
    event_scoring_method: Optional[str] = None
    stages: Dict[str, StageNode] = field(default_factory=dict)
    scores: Dict[str, Dict[str, ScoreRow]] = field(default_factory=dict)

    def __post_init__(self):
        self._children: Dict[Optional[str], List[StageNode]] = {}
        for node in self.stages.values():
            self._children.setdefault(node.parent_id, []).append(node)
        for siblings in self._children.values():
            siblings.sort(key=lambda node: node.number)

    def stage(self, stage_id: str) -> StageNode:
        try:
            return self.stages[stage_id]
        except KeyError:
            raise NotFoundError("EventStage", stage_id) from None

    def require_participant(self, participant_id: str):
        if participant_id not in self.participant_ids:
            raise NotFoundError("EventParticipant", participant_id)

    def children_of(self, parent_id: Optional[str]) -> List[StageNode]:
        return list(self._children.get(parent_id, []))

    def top_level_stages(self) -> List[StageNode]:
        return self.children_of(None)

    def is_composite(self, stage_id: str) -> bool:
        return bool(self._children.get(stage_id))

    def siblings_before(self, stage_id: str) -> List[StageNode]:
        node = self.stage(stage_id)
        return [s for s in self.children_of(node.parent_id) if s.number < node.number]

    def siblings_after(self, stage_id: str) -> List[StageNode]:
        node = self.stage(stage_id)
        return [s for s in self.children_of(node.parent_id) if s.number > node.number]

    def ancestors(self, stage_id: str) -> List[StageNode]:
        """Parent chain, nearest first."""
        chain = []
        node = self.stage(stage_id)
        while node.parent_id is not None:
            node = self.stage(node.parent_id)
            chain.append(node)
        return chain

    def ordered_stages(self) -> List[StageNode]:
        """Depth-first, children in ``number`` order."""
        ordered = []

        def visit(parent_id):
            for node in self.children_of(parent_id):
                ordered.append(node)
                visit(node.id)

        visit(None)
        return ordered

    def values_for(self, stage_id: str) -> Dict[str, Any]:
        """Raw values recorded at a stage, skipping participants without one."""
        return {
            pid: row.value
            for pid, row in self.scores.get(stage_id, {}).items()
            if row.value is not None
        }

    def replace_scores(self, stage_id: str, rows: List[ScoreRow]):
        self.scores[stage_id] = {row.participant_id: row for row in rows}

    def event_info(self) -> EventInfo:
        return EventInfo(
            id=self.event_id,
            name=self.name,
            participant_ids=list(self.participant_ids),
            metadata=dict(self.metadata),
        )
