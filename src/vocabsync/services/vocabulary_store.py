"""SQLAlchemy-backed vocabulary store used by the sync workflow."""
import logging
from datetime import datetime
from typing import List, Protocol, Sequence

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocabsync.exceptions import PersistenceError
from vocabsync.models.entities import (
    EPOCH,
    SchedulingState,
    VocabularyEntry,
    ensure_utc,
)
from vocabsync.models.models import SyncState, VocabularyRecord
from vocabsync.monitoring import db_errors

logger = logging.getLogger(__name__)


class VocabularyStore(Protocol):
    """Storage operations the sync workflow depends on."""

    def get_all(self) -> List[VocabularyEntry]: ...

    def replace_all(self, entries: Sequence[VocabularyEntry]) -> None: ...

    def get_checkpoint(self) -> datetime: ...

    def set_checkpoint(self, checkpoint: datetime) -> None: ...


def record_to_entry(record: VocabularyRecord) -> VocabularyEntry:
    """Convert a database row into a domain entry."""
    return VocabularyEntry(
        id=record.id,
        word=record.word,
        translation=record.translation,
        pronunciation=record.pronunciation,
        part_of_speech=record.part_of_speech,
        notes=record.notes,
        difficulty=record.difficulty if record.difficulty is not None else 3,
        definitions=list(record.definitions or []),
        example_sentences=list(record.example_sentences or []),
        tags=list(record.tags or []),
        # SQLite drops tzinfo on read
        created_at=ensure_utc(record.created_at),
        updated_at=ensure_utc(record.updated_at),
        last_reviewed_at=ensure_utc(record.last_reviewed_at),
        scheduling=SchedulingState(
            interval_days=record.interval_days,
            repetition_count=record.repetition_count,
            ease_factor=record.ease_factor,
            next_review_at=ensure_utc(record.next_review_at),
        ),
    )


def apply_entry(
    record: VocabularyRecord, entry: VocabularyEntry, profile_id: str
) -> VocabularyRecord:
    """Copy every field of ``entry`` onto ``record`` owned by ``profile_id``."""
    record.profile_id = profile_id
    record.id = entry.id
    record.word = entry.word
    record.translation = entry.translation
    record.pronunciation = entry.pronunciation
    record.part_of_speech = entry.part_of_speech
    record.notes = entry.notes
    record.difficulty = entry.difficulty
    record.definitions = list(entry.definitions)
    record.example_sentences = list(entry.example_sentences)
    record.tags = list(entry.tags)
    record.created_at = ensure_utc(entry.created_at)
    record.updated_at = ensure_utc(entry.updated_at)
    record.last_reviewed_at = ensure_utc(entry.last_reviewed_at)
    record.interval_days = entry.scheduling.interval_days
    record.repetition_count = entry.scheduling.repetition_count
    record.ease_factor = entry.scheduling.ease_factor
    record.next_review_at = ensure_utc(entry.scheduling.next_review_at)
    return record


def persistence_error(db: Session, action: str, error: SQLAlchemyError) -> PersistenceError:
    """Roll back, count and log a database failure, and wrap it for callers."""
    db.rollback()
    db_errors.labels(error_type=type(error).__name__).inc()
    logger.error("Failed to %s: %s", action, str(error))
    return PersistenceError(f"Failed to {action}: {error}")


class SqlVocabularyStore:
    """Vocabulary store over a SQLAlchemy session, scoped to one sync profile."""

    def __init__(self, db: Session, profile_id: str):
        """Initialize the store with a database session and profile."""
        self.db = db
        self.profile_id = profile_id

    def _records(self):
        return self.db.query(VocabularyRecord).filter(VocabularyRecord.profile_id == self.profile_id)

    def get_all(self) -> List[VocabularyEntry]:
        """Read every entry of this profile, ordered by identifier."""
        try:
            records = self._records().order_by(VocabularyRecord.id).all()
        except SQLAlchemyError as e:
            raise persistence_error(self.db, "read vocabulary", e) from e
        return [record_to_entry(record) for record in records]

    def count(self) -> int:
        """Number of entries held for this profile."""
        try:
            return self._records().count()
        except SQLAlchemyError as e:
            raise persistence_error(self.db, "count vocabulary", e) from e

    def replace_all(self, entries: Sequence[VocabularyEntry]) -> None:
        """Replace this profile's collection with ``entries`` in one transaction."""
        try:
            self._records().delete(synchronize_session=False)
            # Drop stale identity-map objects before re-adding the same keys
            for obj in list(self.db.identity_map.values()):
                if isinstance(obj, VocabularyRecord) and inspect(obj).identity[0] == self.profile_id:
                    self.db.expunge(obj)
            self.db.add_all(
                apply_entry(VocabularyRecord(), entry, self.profile_id) for entry in entries
            )
            self.db.commit()
        except SQLAlchemyError as e:
            raise persistence_error(self.db, "replace vocabulary", e) from e
        logger.info("Stored %d vocabulary entries", len(entries))

    def get_checkpoint(self) -> datetime:
        """Instant of the last successful sync, or the epoch if never synced."""
        try:
            state = self.db.get(SyncState, self.profile_id)
        except SQLAlchemyError as e:
            raise persistence_error(self.db, "read sync checkpoint", e) from e
        if state is None:
            return EPOCH
        return ensure_utc(state.last_sync_at)

    def set_checkpoint(self, checkpoint: datetime) -> None:
        """Persist the sync checkpoint for this profile."""
        try:
            state = self.db.get(SyncState, self.profile_id)
            if state is None:
                state = SyncState(profile_id=self.profile_id)
                self.db.add(state)
            state.last_sync_at = ensure_utc(checkpoint)
            self.db.commit()
        except SQLAlchemyError as e:
            raise persistence_error(self.db, "write sync checkpoint", e) from e
