"""
Shared declarative base for all database models.

All models should import Base from this module to ensure they
use the same metadata registry.
"""

import uuid

from sqlalchemy import Column, String, Float, Index, JSON, text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def generate_id() -> str:
    """16 hex character identifier used as primary key for every entity."""
    return uuid.uuid4().hex[:16]


class CommonColumns:
    """Columns shared by every structural entity (name, notes, location, metadata)."""

    id = Column(String(16), primary_key=True, default=generate_id)
    name = Column(String(255), index=True)
    notes = Column(String(200))
    lat = Column(Float, nullable=False, default=0.0)
    lng = Column(Float, nullable=False, default=0.0)
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON)

    def __init__(self, **kwargs):
        kwargs.setdefault('id', generate_id())
        kwargs.setdefault('lat', 0.0)
        kwargs.setdefault('lng', 0.0)
        super().__init__(**kwargs)

    def merged_meta(self, patch: dict) -> dict:
        """Return a new metadata dict with ``patch`` applied (JSON columns need reassignment)."""
        merged = dict(self.meta or {})
        merged.update(patch)
        return merged


def unique_top_level_number(name: str, container: str) -> Index:
    """
    Unique ``number`` among the top-level stages of one container.

    The (container, parent_id, number) constraint never fires for top-level
    stages because NULL parents compare as distinct, so those rows get a
    partial index of their own.
    """
    return Index(
        name, container, 'number', unique=True,
        sqlite_where=text('parent_id IS NULL'),
        postgresql_where=text('parent_id IS NULL'),
    )
