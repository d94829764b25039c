"""
Structural setup: sports, formats, venues, participants and events.

Builds the template stage tree of an event format, mirrors it 1:1 for a
venue and again for every played event. All writes go through the caller's
session and are only flushed, so a whole setup can be committed (or rolled
back) together.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from multisport_scoring.exceptions import ConfigurationError, NotFoundError, StructureError
from multisport_scoring.models import (
    Event,
    EventFormat,
    EventFormatStage,
    EventParticipant,
    EventStage,
    Participant,
    ScoreFormat,
    Sport,
    TeamMember,
    Venue,
    VenueEventFormat,
    VenueEventFormatStage,
)
from multisport_scoring.scoring.base import ScoringMethod
from multisport_scoring.scoring.registry import ScoringMethodRegistry

logger = logging.getLogger(__name__)

StagePath = Tuple[int, ...]


@dataclass
class StageDefinition:
    """One node of an event format's stage tree, with its children."""
    name: str
    number: int
    # A ScoreFormat or the name of one; None inherits from the parent stage
    score_format: Optional[Union[ScoreFormat, str]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    children: List['StageDefinition'] = field(default_factory=list)


def _check_sibling_numbers(numbers: Iterable[int], where: str):
    seen = set()
    for number in numbers:
        if number in seen:
            raise StructureError(f"Duplicate stage number {number} under {where}")
        seen.add(number)


def _children_by_parent(nodes) -> Dict[Optional[str], list]:
    children: Dict[Optional[str], list] = {}
    for node in nodes:
        children.setdefault(node.parent_id, []).append(node)
    for siblings in children.values():
        siblings.sort(key=lambda node: node.number)
    return children


class StructureService:
    """Creates the structural entities the scoring engine operates over."""

    def __init__(self, db_session: AsyncSession, registry: ScoringMethodRegistry):
        self.db = db_session
        self.registry = registry

    async def register_sport(self, name: str, scoring_methods: Sequence[ScoringMethod] = ()) -> Sport:
        """
        Register a sport by name, creating it on first use.

        Any supplied scoring methods are registered as well; registering an
        already known instance again is harmless.
        """
        for method in scoring_methods:
            self.registry.register(method)

        sport = await self.db.scalar(select(Sport).where(Sport.name == name))
        if sport:
            return sport

        sport = Sport(name=name)
        self.db.add(sport)
        await self.db.flush()

        logger.info(f"Registered sport: {name}")
        return sport

    async def create_score_format(self, name: str, scoring_method: str, sport: Optional[Sport] = None) -> ScoreFormat:
        """Bind a registered scoring method to a named score format."""
        if scoring_method not in self.registry:
            raise ConfigurationError(f"Scoring method '{scoring_method}' is not registered")

        existing = await self.db.scalar(select(ScoreFormat).where(ScoreFormat.name == name))
        if existing:
            raise StructureError(f"Score format '{name}' already exists")

        score_format = ScoreFormat(
            name=name,
            scoring_method=scoring_method,
            sport_id=sport.id if sport else None,
        )
        self.db.add(score_format)
        await self.db.flush()

        logger.info(f"Created score format '{name}' using {scoring_method}")
        return score_format

    async def _score_format_id(self, score_format: Optional[Union[ScoreFormat, str]]) -> Optional[str]:
        if score_format is None:
            return None
        if isinstance(score_format, ScoreFormat):
            return score_format.id

        found = await self.db.scalar(select(ScoreFormat).where(ScoreFormat.name == score_format))
        if not found:
            raise NotFoundError("ScoreFormat", score_format)
        return found.id

    async def create_event_format(self, name: str, sport: Optional[Sport], score_format: Optional[Union[ScoreFormat, str]],
                                  stages: Sequence[StageDefinition], **bounds) -> EventFormat:
        """
        Create an event format with its template stage tree.

        Args:
            name: Event format name
            sport: Owning sport
            score_format: Score format used to aggregate the top-level stages
            stages: Top-level stage definitions, each with optional children
            **bounds: Team and duration bounds (min_team_size, max_teams, ...)

        Raises:
            StructureError: Two siblings share a number
        """
        _check_sibling_numbers((stage.number for stage in stages), f"event format '{name}'")

        event_format = EventFormat(
            name=name,
            sport_id=sport.id if sport else None,
            score_format_id=await self._score_format_id(score_format),
            **bounds
        )
        self.db.add(event_format)
        await self.db.flush()

        count = await self._add_template_stages(event_format, None, stages)

        logger.info(f"Created event format '{name}' with {count} stages")
        return event_format

    async def _add_template_stages(self, event_format: EventFormat, parent: Optional[EventFormatStage],
                                   definitions: Sequence[StageDefinition]) -> int:
        count = 0
        for definition in sorted(definitions, key=lambda d: d.number):
            _check_sibling_numbers((child.number for child in definition.children), f"stage '{definition.name}'")

            stage = EventFormatStage(
                event_format_id=event_format.id,
                parent_id=parent.id if parent else None,
                name=definition.name,
                number=definition.number,
                score_format_id=await self._score_format_id(definition.score_format),
                meta=dict(definition.metadata) or None,
            )
            self.db.add(stage)
            await self.db.flush()

            count += 1 + await self._add_template_stages(event_format, stage, definition.children)
        return count

    async def create_venue(self, name: str, lat: float = 0.0, lng: float = 0.0,
                           metadata: Optional[Dict[str, Any]] = None) -> Venue:
        venue = Venue(name=name, lat=lat, lng=lng, meta=metadata)
        self.db.add(venue)
        await self.db.flush()

        logger.info(f"Created venue: {name}")
        return venue

    async def create_venue_event_format(self, venue: Optional[Venue], event_format: EventFormat,
                                        name: Optional[str] = None,
                                        stage_overrides: Optional[Dict[StagePath, Dict[str, Any]]] = None) -> VenueEventFormat:
        """
        Lay an event format out at a venue, mirroring its template stage tree.

        ``stage_overrides`` is keyed by the path of stage numbers from the
        root, e.g. ``{(5,): {"distance": 320, "metadata": {"par": 4}}}`` for
        hole 5; supported keys are ``name``, ``distance`` and ``metadata``.
        """
        stage_overrides = stage_overrides or {}

        venue_event_format = VenueEventFormat(
            name=name or event_format.name,
            venue_id=venue.id if venue else None,
            event_format_id=event_format.id,
        )
        self.db.add(venue_event_format)
        await self.db.flush()

        result = await self.db.execute(
            select(EventFormatStage).where(EventFormatStage.event_format_id == event_format.id)
        )
        templates = _children_by_parent(result.scalars().all())

        async def mirror(template_parent_id: Optional[str], parent: Optional[VenueEventFormatStage], path: StagePath):
            for template in templates.get(template_parent_id, []):
                stage_path = path + (template.number,)
                override = stage_overrides.get(stage_path, {})
                stage = VenueEventFormatStage(
                    venue_event_format_id=venue_event_format.id,
                    event_format_stage_id=template.id,
                    parent_id=parent.id if parent else None,
                    name=override.get("name", template.name),
                    number=template.number,
                    distance=override.get("distance"),
                    meta=override.get("metadata"),
                )
                self.db.add(stage)
                await self.db.flush()
                await mirror(template.id, stage, stage_path)

        await mirror(None, None, ())

        logger.info(f"Created venue event format '{venue_event_format.name}'")
        return venue_event_format

    async def create_participant(self, name: str, is_team: bool = False, **fields) -> Participant:
        participant = Participant(name=name, is_team=is_team, **fields)
        self.db.add(participant)
        await self.db.flush()
        return participant

    async def add_team_member(self, team: Participant, player: Participant) -> TeamMember:
        if not team.is_team:
            raise StructureError(f"Participant {team.id} is not a team")
        if player.is_team:
            raise StructureError(f"Team {player.id} cannot be a team member")

        existing = await self.db.scalar(
            select(TeamMember).where(and_(
                TeamMember.team_id == team.id,
                TeamMember.participant_id == player.id
            ))
        )
        if existing:
            raise StructureError(f"Participant {player.id} already in team {team.id}")

        member = TeamMember(team_id=team.id, participant_id=player.id)
        self.db.add(member)
        await self.db.flush()

        logger.info(f"Added participant {player.id} to team {team.id}")
        return member

    async def create_event(self, venue_event_format: VenueEventFormat, participants: Sequence[Participant] = (),
                           name: Optional[str] = None, start_time: Optional[datetime] = None,
                           metadata: Optional[Dict[str, Any]] = None) -> Event:
        """Create an event with stages mirroring the venue layout and enter its participants."""
        fields: Dict[str, Any] = {
            "name": name or venue_event_format.name,
            "venue_event_format_id": venue_event_format.id,
            "meta": metadata,
        }
        if start_time is not None:
            fields["start_time"] = start_time

        event = Event(**fields)
        self.db.add(event)
        await self.db.flush()

        result = await self.db.execute(
            select(VenueEventFormatStage)
            .where(VenueEventFormatStage.venue_event_format_id == venue_event_format.id)
        )
        venue_stages = _children_by_parent(result.scalars().all())

        async def mirror(venue_parent_id: Optional[str], parent: Optional[EventStage]):
            for venue_stage in venue_stages.get(venue_parent_id, []):
                stage = EventStage(
                    event_id=event.id,
                    venue_event_format_stage_id=venue_stage.id,
                    parent_id=parent.id if parent else None,
                    name=venue_stage.name,
                    number=venue_stage.number,
                )
                self.db.add(stage)
                await self.db.flush()
                await mirror(venue_stage.id, stage)

        await mirror(None, None)

        for participant in participants:
            await self.add_event_participant(event, participant)

        logger.info(f"Created event '{event.name}' with {len(participants)} participants")
        return event

    async def add_event_participant(self, event: Event, participant: Participant) -> EventParticipant:
        if participant.is_deleted:
            raise StructureError(f"Participant {participant.id} is deleted")

        existing = await self.db.scalar(
            select(EventParticipant).where(and_(
                EventParticipant.event_id == event.id,
                EventParticipant.participant_id == participant.id
            ))
        )
        if existing:
            raise StructureError(f"Participant {participant.id} already entered in event {event.id}")

        entry = EventParticipant(event_id=event.id, participant_id=participant.id)
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def get_event_stages(self, event_id: str) -> List[EventStage]:
        """Event stages ordered by parent then number."""
        event = await self.db.get(Event, event_id)
        if not event:
            raise NotFoundError("Event", event_id)

        result = await self.db.execute(select(EventStage).where(EventStage.event_id == event_id))
        ordered: List[EventStage] = []
        children = _children_by_parent(result.scalars().all())

        def visit(parent_id):
            for stage in children.get(parent_id, []):
                ordered.append(stage)
                visit(stage.id)

        visit(None)
        return ordered
