"""
Participant models.

Players and teams share one table distinguished by ``is_team``; team
membership is a separate join table.
"""

from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, UniqueConstraint
from datetime import datetime, timezone
from enum import Enum
from .base import Base, CommonColumns, generate_id


class Sex(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    MIXED = "MIXED"
    UNKNOWN = "UNKNOWN"


class Participant(CommonColumns, Base):
    """A player or a team."""
    __tablename__ = "participants"

    sex = Column(String(10), nullable=False, default=Sex.UNKNOWN.value)
    birthday = Column(DateTime)
    is_team = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    deleted_at = Column(DateTime)

    def __init__(self, **kwargs):
        kwargs.setdefault('sex', Sex.UNKNOWN.value)
        kwargs.setdefault('is_team', False)
        kwargs.setdefault('created_at', datetime.now(timezone.utc))
        super().__init__(**kwargs)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self):
        kind = "team" if self.is_team else "player"
        return f"<Participant(id={self.id}, name='{self.name}', {kind})>"


class TeamMember(Base):
    """Membership of a player participant in a team participant."""
    __tablename__ = "team_members"

    id = Column(String(16), primary_key=True, default=generate_id)
    team_id = Column(String(16), ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(String(16), ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        UniqueConstraint('team_id', 'participant_id', name='uq_team_member'),
    )

    def __repr__(self):
        return f"<TeamMember(team_id={self.team_id}, participant_id={self.participant_id})>"
