"""
Venue models.

A venue event format instantiates an event format template at a venue and
mirrors its stage tree 1:1 so venue-specific metadata (distance, par,
location) can be attached without touching the template.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, UniqueConstraint
from .base import Base, CommonColumns, unique_top_level_number


class Venue(CommonColumns, Base):
    """The sports complex, course or pool."""
    __tablename__ = "venues"

    def __repr__(self):
        return f"<Venue(id={self.id}, name='{self.name}')>"


class VenueEventFormat(CommonColumns, Base):
    """An event format as laid out at a venue (e.g. "18 holes at Pine Nursery")."""
    __tablename__ = "venue_event_formats"

    venue_id = Column(String(16), ForeignKey("venues.id", ondelete="CASCADE"), index=True)
    event_format_id = Column(String(16), ForeignKey("event_formats.id", ondelete="CASCADE"), nullable=False, index=True)

    def __repr__(self):
        return f"<VenueEventFormat(id={self.id}, name='{self.name}', event_format_id={self.event_format_id})>"


class VenueEventFormatStage(CommonColumns, Base):
    """A template stage at a venue (e.g. "Hole 5 at Pine Nursery")."""
    __tablename__ = "venue_event_format_stages"

    venue_event_format_id = Column(String(16), ForeignKey("venue_event_formats.id", ondelete="CASCADE"), nullable=False, index=True)
    event_format_stage_id = Column(String(16), ForeignKey("event_format_stages.id", ondelete="CASCADE"), nullable=False)
    parent_id = Column(String(16), ForeignKey("venue_event_format_stages.id", ondelete="CASCADE"), index=True)
    number = Column(Integer, nullable=False, default=0)
    distance = Column(Float)

    __table_args__ = (
        UniqueConstraint('venue_event_format_id', 'parent_id', 'number', name='uq_venue_event_format_stage_child'),
        unique_top_level_number('uq_venue_event_format_stage_root', 'venue_event_format_id'),
    )

    def __repr__(self):
        return f"<VenueEventFormatStage(id={self.id}, name='{self.name}', number={self.number})>"
