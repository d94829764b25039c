"""
Score store: the storage operations the orchestrator depends on.

Reads the event's full structure and raw values in one snapshot and writes
back only derived fields (score rows, event and stage metadata).
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from multisport_scoring.exceptions import NotFoundError
from multisport_scoring.models import (
    Event,
    EventFormat,
    EventFormatStage,
    EventParticipant,
    EventStage,
    ParticipantEventStageScore,
    ScoreFormat,
    VenueEventFormat,
    VenueEventFormatStage,
)
from .snapshot import EventSnapshot, ScoreRow, StageNode

logger = logging.getLogger(__name__)

SCORE_FIELDS = {
    "value", "completed_at", "points", "won", "lost", "tied", "win_margin",
    "loss_margin", "points_behind_previous", "points_ahead_of_next", "notes",
}


def _score_row(score: ParticipantEventStageScore) -> ScoreRow:
    return ScoreRow(
        participant_id=score.participant_id,
        value=score.value,
        points=score.points,
        won=bool(score.won),
        lost=bool(score.lost),
        tied=bool(score.tied),
        completed_at=score.completed_at,
        meta=dict(score.meta or {}),
    )


class ScoreStore:
    """Storage collaborator backed by an async SQLAlchemy session."""

    def __init__(self, db_session: AsyncSession, annotation_key: str = "results"):
        self.db = db_session
        # Derived annotations are never fed back into scoring
        self.annotation_key = annotation_key

    def _without_annotation(self, meta: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        return {key: value for key, value in (meta or {}).items() if key != self.annotation_key}

    async def load_event_snapshot(self, event_id: str) -> EventSnapshot:
        """
        Load an event with its participants, stage tree and score rows.

        Args:
            event_id: Event identifier

        Returns:
            EventSnapshot with every stage's scoring method resolved

        Raises:
            NotFoundError: If the event or its venue event format is missing
        """
        event = await self.db.get(Event, event_id)
        if not event:
            raise NotFoundError("Event", event_id)

        venue_event_format = await self.db.get(VenueEventFormat, event.venue_event_format_id)
        if not venue_event_format:
            raise NotFoundError("VenueEventFormat", event.venue_event_format_id)
        event_format = await self.db.get(EventFormat, venue_event_format.event_format_id)
        if not event_format:
            raise NotFoundError("EventFormat", venue_event_format.event_format_id)

        participant_result = await self.db.execute(
            select(EventParticipant.participant_id)
            .where(EventParticipant.event_id == event_id)
            .order_by(EventParticipant.joined_at, EventParticipant.participant_id)
        )
        participant_ids = list(participant_result.scalars().all())

        stage_result = await self.db.execute(
            select(EventStage, VenueEventFormatStage, EventFormatStage)
            .join(VenueEventFormatStage, EventStage.venue_event_format_stage_id == VenueEventFormatStage.id)
            .join(EventFormatStage, VenueEventFormatStage.event_format_stage_id == EventFormatStage.id)
            .where(EventStage.event_id == event_id)
        )
        rows = stage_result.all()

        score_formats = await self._load_score_formats()
        templates = {template.id: template for _, _, template in rows}

        stages: Dict[str, StageNode] = {}
        for event_stage, venue_stage, template in rows:
            score_format_id = self._resolve_score_format_id(template, templates, event_format)
            score_format = score_formats.get(score_format_id)

            metadata = dict(template.meta or {})
            if venue_stage.distance is not None:
                metadata["distance"] = venue_stage.distance
            metadata.update(venue_stage.meta or {})
            metadata.update(self._without_annotation(event_stage.meta))

            stages[event_stage.id] = StageNode(
                id=event_stage.id,
                number=event_stage.number,
                name=event_stage.name or venue_stage.name or template.name,
                parent_id=event_stage.parent_id,
                venue_stage_id=venue_stage.id,
                score_format_id=score_format_id,
                scoring_method=score_format.scoring_method if score_format else None,
                metadata=metadata,
            )

        scores: Dict[str, Dict[str, ScoreRow]] = {}
        if stages:
            score_result = await self.db.execute(
                select(ParticipantEventStageScore)
                .where(ParticipantEventStageScore.event_stage_id.in_(list(stages)))
            )
            for score in score_result.scalars().all():
                scores.setdefault(score.event_stage_id, {})[score.participant_id] = _score_row(score)

        event_score_format = score_formats.get(event_format.score_format_id)

        logger.debug(f"Loaded event {event_id}: {len(stages)} stages, {len(participant_ids)} participants")

        return EventSnapshot(
            event_id=event.id,
            name=event.name,
            metadata=self._without_annotation(event.meta),
            participant_ids=participant_ids,
            event_score_format_id=event_format.score_format_id,
            event_scoring_method=event_score_format.scoring_method if event_score_format else None,
            stages=stages,
            scores=scores,
        )

    async def _load_score_formats(self) -> Dict[str, ScoreFormat]:
        result = await self.db.execute(select(ScoreFormat))
        return {score_format.id: score_format for score_format in result.scalars().all()}

    @staticmethod
    def _resolve_score_format_id(template: EventFormatStage, templates: Dict[str, EventFormatStage],
                                 event_format: EventFormat) -> Optional[str]:
        """A stage's own score format, else the nearest ancestor's, else the event format's."""
        node = template
        while node is not None:
            if node.score_format_id:
                return node.score_format_id
            node = templates.get(node.parent_id) if node.parent_id else None
        return event_format.score_format_id

    async def get_scores_for_stage(self, stage_id: str) -> List[ScoreRow]:
        result = await self.db.execute(
            select(ParticipantEventStageScore)
            .where(ParticipantEventStageScore.event_stage_id == stage_id)
            .order_by(ParticipantEventStageScore.participant_id)
        )
        return [_score_row(score) for score in result.scalars().all()]

    async def get_score(self, stage_id: str, participant_id: str) -> Optional[ParticipantEventStageScore]:
        return await self.db.scalar(
            select(ParticipantEventStageScore)
            .where(and_(
                ParticipantEventStageScore.event_stage_id == stage_id,
                ParticipantEventStageScore.participant_id == participant_id
            ))
        )

    async def upsert_score(self, stage_id: str, participant_id: str, fields: Dict[str, Any]) -> ParticipantEventStageScore:
        """
        Create or update the score row for (stage, participant).

        Only the supplied fields are written; ``meta`` is merged into the
        existing metadata rather than replacing it.
        """
        unknown = set(fields) - SCORE_FIELDS - {"meta"}
        if unknown:
            raise ValueError(f"Unknown score fields: {sorted(unknown)}")

        score = await self.get_score(stage_id, participant_id)
        if score is None:
            score = ParticipantEventStageScore(event_stage_id=stage_id, participant_id=participant_id)
            self.db.add(score)

        for name, value in fields.items():
            if name == "meta":
                merged = dict(score.meta or {})
                merged.update(value)
                score.meta = merged
            else:
                setattr(score, name, value)

        await self.db.flush()
        return score

    async def update_event_metadata(self, event_id: str, patch: Dict[str, Any]) -> Event:
        event = await self.db.get(Event, event_id)
        if not event:
            raise NotFoundError("Event", event_id)
        event.meta = event.merged_meta(patch)
        await self.db.flush()
        return event

    async def update_stage_metadata(self, stage_id: str, patch: Dict[str, Any]) -> EventStage:
        stage = await self.db.get(EventStage, stage_id)
        if not stage:
            raise NotFoundError("EventStage", stage_id)
        stage.meta = stage.merged_meta(patch)
        await self.db.flush()
        return stage

    async def get_venue_stage_scoring_method(self, venue_stage_id: str) -> Optional[str]:
        """Scoring method name bound to a venue stage through its template."""
        venue_stage = await self.db.get(VenueEventFormatStage, venue_stage_id)
        if not venue_stage:
            raise NotFoundError("VenueEventFormatStage", venue_stage_id)
        template = await self.db.get(EventFormatStage, venue_stage.event_format_stage_id)
        if not template:
            raise NotFoundError("EventFormatStage", venue_stage.event_format_stage_id)
        event_format = await self.db.get(EventFormat, template.event_format_id)

        result = await self.db.execute(
            select(EventFormatStage).where(EventFormatStage.event_format_id == template.event_format_id)
        )
        templates = {node.id: node for node in result.scalars().all()}

        score_format_id = self._resolve_score_format_id(template, templates, event_format)
        if not score_format_id:
            return None
        score_format = await self.db.get(ScoreFormat, score_format_id)
        return score_format.scoring_method if score_format else None

    async def get_historical_values(self, venue_stage_id: str, before: Optional[datetime] = None) -> List[Any]:
        """Every raw value recorded at a venue stage across all events."""
        query = (
            select(ParticipantEventStageScore.value)
            .join(EventStage, ParticipantEventStageScore.event_stage_id == EventStage.id)
            .join(Event, EventStage.event_id == Event.id)
            .where(EventStage.venue_event_format_stage_id == venue_stage_id)
        )
        if before is not None:
            query = query.where(Event.start_time < before)

        result = await self.db.execute(query)
        return [value for value in result.scalars().all() if value is not None]
