"""Database models for vocabsync."""
from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    Integer,
    String,
)

from vocabsync.models.base import Base


class VocabularyRecord(Base):
    """Stored vocabulary entry with its embedded scheduling state.

    Every sync profile keeps its own collection, keyed by
    ``(profile_id, id)``.

    Timestamps are domain data copied verbatim between replicas, so the
    table has no ``default``/``onupdate`` hooks for them.
    """

    __tablename__ = "vocabulary_entries"

    profile_id = Column(String, primary_key=True)
    id = Column(String, primary_key=True)
    word = Column(String, nullable=False, index=True)
    translation = Column(String, nullable=False)
    pronunciation = Column(String)
    part_of_speech = Column(String)
    notes = Column(String)
    difficulty = Column(Integer, default=3)
    definitions = Column(JSON, default=list)
    example_sentences = Column(JSON, default=list)
    tags = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    last_reviewed_at = Column(DateTime(timezone=True), nullable=True)

    # Scheduling state
    interval_days = Column(Integer, nullable=False, default=0)
    repetition_count = Column(Integer, nullable=False, default=0)
    ease_factor = Column(Float, nullable=False, default=2.5)
    next_review_at = Column(DateTime(timezone=True), nullable=False, index=True)


class SyncState(Base):
    """Last successful synchronization checkpoint, one row per profile."""

    __tablename__ = "sync_state"

    profile_id = Column(String, primary_key=True)
    last_sync_at = Column(DateTime(timezone=True), nullable=False)
