"""
Event models.

An event is one played instance of a venue event format. Its stages mirror
the venue stage tree and hold one score row per participant; the score row
is the only mutable fact the engine consumes and the only place it writes
derived results.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, ForeignKey, UniqueConstraint, Index, JSON
from datetime import datetime, timezone
from .base import Base, CommonColumns, generate_id, unique_top_level_number


class Event(CommonColumns, Base):
    """One concrete played instance of a venue event format."""
    __tablename__ = "events"

    venue_event_format_id = Column(String(16), ForeignKey("venue_event_formats.id", ondelete="CASCADE"), nullable=False, index=True)
    start_time = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    end_time = Column(DateTime)
    active = Column(Boolean, nullable=False, default=True)

    def __init__(self, **kwargs):
        kwargs.setdefault('active', True)
        kwargs.setdefault('start_time', datetime.now(timezone.utc))
        super().__init__(**kwargs)

    @property
    def is_finished(self) -> bool:
        return self.end_time is not None

    def __repr__(self):
        return f"<Event(id={self.id}, name='{self.name}', active={self.active})>"


class EventStage(CommonColumns, Base):
    """Concrete instantiation of one venue stage for one event."""
    __tablename__ = "event_stages"

    event_id = Column(String(16), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    venue_event_format_stage_id = Column(String(16), ForeignKey("venue_event_format_stages.id", ondelete="CASCADE"), nullable=False)
    parent_id = Column(String(16), ForeignKey("event_stages.id", ondelete="CASCADE"), index=True)
    number = Column(Integer, nullable=False, default=0)
    start_time = Column(DateTime)
    end_time = Column(DateTime)
    active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint('event_id', 'parent_id', 'number', name='uq_event_stage_child'),
        unique_top_level_number('uq_event_stage_root', 'event_id'),
    )

    def __init__(self, **kwargs):
        kwargs.setdefault('active', True)
        super().__init__(**kwargs)

    def __repr__(self):
        return f"<EventStage(id={self.id}, event_id={self.event_id}, number={self.number})>"


class EventParticipant(Base):
    """A participant entered in an event."""
    __tablename__ = "event_participants"

    id = Column(String(16), primary_key=True, default=generate_id)
    event_id = Column(String(16), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(String(16), ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    joined_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint('event_id', 'participant_id', name='uq_event_participant'),
    )

    def __repr__(self):
        return f"<EventParticipant(event_id={self.event_id}, participant_id={self.participant_id})>"


class ParticipantEventStageScore(Base):
    """
    One participant's recorded value at one event stage.

    ``value`` is owned by the caller. Every other result column and the
    ``place``/``placeFromEnd``/``scoreType``/``stats`` metadata keys are
    derived by the orchestrator and overwritten on every recomputation.
    """
    __tablename__ = "participant_event_stage_scores"

    id = Column(String(16), primary_key=True, default=generate_id)
    event_stage_id = Column(String(16), ForeignKey("event_stages.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(String(16), ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True)

    # Raw recorded value (sport-defined structure)
    value = Column(JSON)
    completed_at = Column(DateTime)

    # Derived results
    points = Column(Float)
    won = Column(Boolean, default=False)
    lost = Column(Boolean, default=False)
    tied = Column(Boolean, default=False)
    win_margin = Column(Float)
    loss_margin = Column(Float)
    points_behind_previous = Column(Float)
    points_ahead_of_next = Column(Float)

    notes = Column(String(200))
    meta = Column("metadata", JSON)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc), nullable=False)

    __table_args__ = (
        UniqueConstraint('event_stage_id', 'participant_id', name='uq_stage_participant_score'),
        Index('idx_score_participant_stage', 'participant_id', 'event_stage_id'),
    )

    def __init__(self, **kwargs):
        kwargs.setdefault('id', generate_id())
        now = datetime.now(timezone.utc)
        kwargs.setdefault('created_at', now)
        kwargs.setdefault('updated_at', now)
        super().__init__(**kwargs)

    @property
    def place(self):
        return (self.meta or {}).get("place")

    @property
    def has_value(self) -> bool:
        return self.value is not None

    def __repr__(self):
        return f"<ParticipantEventStageScore(stage={self.event_stage_id}, participant={self.participant_id}, points={self.points})>"
