"""
Scoring Engine Database Models

This package contains all SQLAlchemy models the engine operates over:
- Sport, ScoreFormat, EventFormat, EventFormatStage: structural templates
- Venue, VenueEventFormat, VenueEventFormatStage: venue instantiations
- Participant, TeamMember: players and teams
- Event, EventStage, EventParticipant, ParticipantEventStageScore: played events
"""

from .base import Base, generate_id
from .sport import Sport, ScoreFormat, EventFormat, EventFormatStage
from .venue import Venue, VenueEventFormat, VenueEventFormatStage
from .participant import Participant, TeamMember, Sex
from .event import Event, EventStage, EventParticipant, ParticipantEventStageScore

__all__ = [
    "Base",
    "generate_id",
    "Sport",
    "ScoreFormat",
    "EventFormat",
    "EventFormatStage",
    "Venue",
    "VenueEventFormat",
    "VenueEventFormatStage",
    "Participant",
    "TeamMember",
    "Sex",
    "Event",
    "EventStage",
    "EventParticipant",
    "ParticipantEventStageScore",
]
