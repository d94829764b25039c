"""
Recomputation orchestrator.

``set_stage_score`` is the only writer of derived score state. One call
loads the event, validates and stores the raw value, rescores the target
stage, re-aggregates its parent stages and the event, and, when the bound
scoring method propagates, repeats that for every later sibling stage.

The whole cascade runs in one session transaction under a per-event lock:
it either commits completely or leaves nothing behind.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from multisport_scoring.config import EngineConfig
from multisport_scoring.db import Database
from multisport_scoring.exceptions import StructureError, ValidationError
from multisport_scoring.scoring.registry import ScoringMethodRegistry
from multisport_scoring.scoring.results import GroupResult
from .evaluator import EventEvaluator, EventScores
from .locks import KeyedLock
from .snapshot import StageNode
from .store import ScoreStore

logger = logging.getLogger(__name__)


@dataclass
class ScoreUpdate:
    """Outcome of one score submission."""
    event_id: str
    stage_id: str
    participant_id: str
    stage_result: GroupResult
    event_result: GroupResult
    recomputed_stage_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "eventId": self.event_id,
            "stageId": self.stage_id,
            "participantId": self.participant_id,
            "stageResult": self.stage_result.to_dict(),
            "eventResult": self.event_result.to_dict(),
            "recomputedStageIds": list(self.recomputed_stage_ids),
        }


class ScoreOrchestrator:
    """Entry point for score submissions and read-only score views."""

    def __init__(self, database: Database, registry: ScoringMethodRegistry,
                 engine_config: Optional[EngineConfig] = None):
        self.database = database
        self.registry = registry
        self.config = engine_config or EngineConfig()
        self._locks = KeyedLock()

    @asynccontextmanager
    async def _event_guard(self, event_id: str):
        if self.config.lock_per_event:
            async with self._locks.hold(event_id):
                yield
        else:
            yield

    async def set_stage_score(self, event_id: str, stage_id: str, participant_id: str, value: Any) -> ScoreUpdate:
        """
        Record a raw value for a participant at a stage and cascade the results.

        Args:
            event_id: Event identifier
            stage_id: Event stage identifier (must be a leaf stage)
            participant_id: Participant entered in the event
            value: Raw sport-defined value interpreted by the stage's scoring method

        Returns:
            ScoreUpdate with the target stage's and the event's results

        Raises:
            NotFoundError: Event, stage, participant or score format missing
            StructureError: The stage has child stages
            ValidationError: The scoring method rejected the value
            ConfigurationError: The bound scoring method is not registered
        """
        async with self._event_guard(event_id):
            async with self.database.get_session() as session:
                store = ScoreStore(session, self.config.annotation_key)
                snapshot = await store.load_event_snapshot(event_id)

                stage = snapshot.stage(stage_id)
                snapshot.require_participant(participant_id)
                if snapshot.is_composite(stage_id):
                    raise StructureError(f"Stage {stage_id} has child stages and takes no direct scores")

                evaluator = EventEvaluator(snapshot, self.registry)
                method = evaluator.method_for_stage(stage)
                if not method.validate_value(value):
                    logger.warning(f"Rejected value {value!r} for stage {stage_id} ({method.name})")
                    raise ValidationError(
                        f"Invalid value {value!r} for scoring method '{method.name}'",
                        value=value,
                        scoring_method=method.name,
                    )

                await store.upsert_score(stage_id, participant_id, {
                    "value": value,
                    "completed_at": datetime.now(timezone.utc),
                })
                snapshot.replace_scores(stage_id, await store.get_scores_for_stage(stage_id))
                evaluator.invalidate()

                cascade = [stage]
                if method.propagates_to_sibling_stages:
                    cascade.extend(snapshot.siblings_after(stage_id))

                event_result = GroupResult(higher_points_better=method.higher_points_better)
                for node in cascade:
                    await self._persist_stage(store, evaluator, node)
                    for ancestor in snapshot.ancestors(node.id):
                        await self._annotate_stage(store, evaluator, ancestor)
                    event_result = await self._persist_event(store, evaluator)

                stage_result = evaluator.stage_result(stage_id)

        logger.info(
            f"Recorded score for participant {participant_id} at stage {stage_id} "
            f"(event {event_id}, {len(cascade)} stages recomputed)"
        )
        return ScoreUpdate(
            event_id=event_id,
            stage_id=stage_id,
            participant_id=participant_id,
            stage_result=stage_result,
            event_result=event_result,
            recomputed_stage_ids=[node.id for node in cascade],
        )

    async def get_event_scores(self, event_id: str) -> EventScores:
        """Recompute every stage and the event from raw values without writing anything."""
        async with self.database.get_session() as session:
            store = ScoreStore(session, self.config.annotation_key)
            snapshot = await store.load_event_snapshot(event_id)
        return EventEvaluator(snapshot, self.registry).evaluate()

    async def _persist_stage(self, store: ScoreStore, evaluator: EventEvaluator, stage: StageNode) -> GroupResult:
        if evaluator.snapshot.is_composite(stage.id):
            return await self._annotate_stage(store, evaluator, stage)

        result = evaluator.stage_result(stage.id)
        for row in evaluator.snapshot.scores.get(stage.id, {}).values():
            participant = result.get(row.participant_id)
            # Rows without a raw value are not ranked and stay untouched
            if participant is None:
                continue
            await store.upsert_score(stage.id, row.participant_id, {
                "points": participant.points,
                "won": participant.won,
                "lost": participant.lost,
                "tied": participant.tied,
                "win_margin": participant.win_margin,
                "loss_margin": participant.loss_margin,
                "points_behind_previous": participant.points_behind_previous,
                "points_ahead_of_next": participant.points_ahead_of_next,
                "meta": {
                    "place": participant.place,
                    "placeFromEnd": participant.place_from_end,
                    "scoreType": participant.score_type,
                    "stats": participant.stats,
                },
            })

        logger.debug(f"Persisted results for stage {stage.id}: winners={result.winners}")
        return result

    async def _annotate_stage(self, store: ScoreStore, evaluator: EventEvaluator, stage: StageNode) -> GroupResult:
        result = evaluator.stage_result(stage.id)
        await store.update_stage_metadata(stage.id, {self.config.annotation_key: result.to_dict()})
        logger.debug(f"Annotated composite stage {stage.id}: winners={result.winners}")
        return result

    async def _persist_event(self, store: ScoreStore, evaluator: EventEvaluator) -> GroupResult:
        result = evaluator.event_result()
        await store.update_event_metadata(evaluator.snapshot.event_id, {self.config.annotation_key: result.to_dict()})
        return result
