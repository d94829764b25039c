"""
Sport and format models.

A sport owns score formats (a named binding to a scoring method) and event
formats (structural templates whose stages form a tree ordered by
``number`` among siblings).
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from .base import Base, CommonColumns, unique_top_level_number


class Sport(CommonColumns, Base):
    """
    A named category of competition (e.g. "Golf", "Tennis").

    Created once through idempotent registration by name.
    """
    __tablename__ = "sports"

    name = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)

    score_formats = relationship("ScoreFormat", back_populates="sport")

    def __repr__(self):
        return f"<Sport(id={self.id}, name='{self.name}')>"


class ScoreFormat(CommonColumns, Base):
    """
    Binds a scoring method (by registry name) to a sport.

    One scoring method may back many score formats, e.g. "Stroke Play" and
    "Stableford Practice" can both resolve to the same implementation.
    """
    __tablename__ = "score_formats"

    name = Column(String(255), nullable=False, unique=True)
    scoring_method = Column(String(100), nullable=False)
    sport_id = Column(String(16), ForeignKey("sports.id", ondelete="CASCADE"), index=True)

    sport = relationship("Sport", back_populates="score_formats")

    def __repr__(self):
        return f"<ScoreFormat(id={self.id}, name='{self.name}', scoring_method='{self.scoring_method}')>"


class EventFormat(CommonColumns, Base):
    """
    Structural template for a competition ("18-hole round", "best-of-3 match").
    """
    __tablename__ = "event_formats"

    sport_id = Column(String(16), ForeignKey("sports.id", ondelete="CASCADE"), index=True)
    score_format_id = Column(String(16), ForeignKey("score_formats.id"))

    # Team bounds
    min_team_size = Column(Integer, default=1)
    max_team_size = Column(Integer, default=1)
    min_teams = Column(Integer, default=1)
    max_teams = Column(Integer)

    # Expected duration bounds
    min_duration_minutes = Column(Integer)
    max_duration_minutes = Column(Integer)

    def __init__(self, **kwargs):
        kwargs.setdefault('min_team_size', 1)
        kwargs.setdefault('max_team_size', 1)
        kwargs.setdefault('min_teams', 1)
        super().__init__(**kwargs)

    def __repr__(self):
        return f"<EventFormat(id={self.id}, name='{self.name}')>"


class EventFormatStage(CommonColumns, Base):
    """
    A node of the template stage tree ("Hole 5", "Set 2 / Game 3").

    Siblings are distinguished by ``number`` under the same parent.
    """
    __tablename__ = "event_format_stages"

    event_format_id = Column(String(16), ForeignKey("event_formats.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_id = Column(String(16), ForeignKey("event_format_stages.id", ondelete="CASCADE"), index=True)
    number = Column(Integer, nullable=False, default=0)
    # Falls back to the parent stage, then the event format
    score_format_id = Column(String(16), ForeignKey("score_formats.id"))

    __table_args__ = (
        UniqueConstraint('event_format_id', 'parent_id', 'number', name='uq_event_format_stage_child'),
        unique_top_level_number('uq_event_format_stage_root', 'event_format_id'),
    )

    def __repr__(self):
        return f"<EventFormatStage(id={self.id}, name='{self.name}', number={self.number})>"
