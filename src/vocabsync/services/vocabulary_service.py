"""Service for managing vocabulary entries."""
import logging
import uuid
from datetime import datetime, UTC
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocabsync.config import settings
from vocabsync.exceptions import NotFoundError, ValidationError
from vocabsync.models.entities import VocabularyEntry, ensure_utc
from vocabsync.models.models import VocabularyRecord
from vocabsync.monitoring import words_added
from vocabsync.services.scheduling import create_initial_state
from vocabsync.services.vocabulary_store import (
    SqlVocabularyStore,
    apply_entry,
    persistence_error,
    record_to_entry,
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {
    "word",
    "translation",
    "pronunciation",
    "part_of_speech",
    "notes",
    "difficulty",
    "definitions",
    "example_sentences",
    "tags",
}


class VocabularyService:
    """Service for managing the vocabulary entries of one profile."""

    def __init__(self, db: Session, profile_id: Optional[str] = None):
        """Initialize the service with a database session and profile."""
        self.db = db
        self.profile_id = profile_id or settings.sync.profile_id
        self.store = SqlVocabularyStore(db, self.profile_id)

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            raise persistence_error(self.db, action, e) from e

    def _get_record(self, entry_id: str) -> VocabularyRecord:
        try:
            record = self.db.get(VocabularyRecord, (self.profile_id, entry_id))
        except SQLAlchemyError as e:
            raise persistence_error(self.db, "read vocabulary entry", e) from e
        if record is None:
            raise NotFoundError(entry_id)
        return record

    def get_entry(self, entry_id: str) -> VocabularyEntry:
        """Get an entry by its identifier."""
        return record_to_entry(self._get_record(entry_id))

    def list_entries(self) -> List[VocabularyEntry]:
        """Get all entries ordered by identifier."""
        return self.store.get_all()

    def get_entry_count(self) -> int:
        """Get the number of stored entries."""
        return self.store.count()

    def create_entry(
        self,
        word: str,
        translation: str,
        now: Optional[datetime] = None,
        **fields,
    ) -> VocabularyEntry:
        """Create a new entry, due for review immediately."""
        if not word or not word.strip():
            raise ValidationError("Word cannot be empty")
        if not translation or not translation.strip():
            raise ValidationError("Translation cannot be empty")
        self._check_fields(fields)

        now = ensure_utc(now) if now is not None else datetime.now(UTC)
        entry = VocabularyEntry(
            id=str(uuid.uuid4()),
            word=word.strip(),
            translation=translation.strip(),
            created_at=now,
            updated_at=now,
            scheduling=create_initial_state(now),
            **fields,
        )
        self.db.add(apply_entry(VocabularyRecord(), entry, self.profile_id))
        self._commit("create vocabulary entry")

        words_added.inc()
        logger.info("Created entry %s for %r", entry.id, entry.word)
        return entry

    def update_entry(
        self, entry_id: str, now: Optional[datetime] = None, **fields
    ) -> VocabularyEntry:
        """Update editable fields of an entry and bump its modification time."""
        self._check_fields(fields)
        entry = self.get_entry(entry_id)
        now = ensure_utc(now) if now is not None else datetime.now(UTC)

        for key, value in fields.items():
            setattr(entry, key, value)
        entry.updated_at = max(now, entry.updated_at)

        return self.save_entry(entry)

    def save_entry(self, entry: VocabularyEntry) -> VocabularyEntry:
        """Write an already existing entry back to the database."""
        record = self._get_record(entry.id)
        apply_entry(record, entry, self.profile_id)
        self._commit("save vocabulary entry")
        return entry

    def delete_entry(self, entry_id: str) -> None:
        """Delete an entry.

        Deletions are not propagated by sync; a peer that still holds the
        entry will bring it back.
        """
        record = self._get_record(entry_id)
        self.db.delete(record)
        self._commit("delete vocabulary entry")
        logger.info("Deleted entry %s", entry_id)

    @staticmethod
    def _check_fields(fields: dict) -> None:
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown vocabulary fields: {', '.join(sorted(unknown))}")
        difficulty = fields.get("difficulty")
        if difficulty is not None and not 1 <= difficulty <= 5:
            raise ValidationError(f"Difficulty must be between 1 and 5, got {difficulty}")
