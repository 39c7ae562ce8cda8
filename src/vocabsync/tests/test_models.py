"""Tests for data models."""
from datetime import datetime, timedelta, timezone, UTC

from sqlalchemy.orm import Session

from vocabsync.models.entities import (
    ReconciliationStats,
    VocabularyEntry,
    ensure_utc,
)
from vocabsync.models.models import SyncState, VocabularyRecord


def test_ensure_utc() -> None:
    naive = datetime(2024, 5, 1, 8, 30)
    kyiv = datetime(2024, 5, 1, 11, 30, tzinfo=timezone(timedelta(hours=3)))

    assert ensure_utc(None) is None
    assert ensure_utc(naive) == datetime(2024, 5, 1, 8, 30, tzinfo=UTC)
    assert ensure_utc(kyiv).tzinfo == UTC
    assert ensure_utc(kyiv) == ensure_utc(naive)


def test_entry_from_minimal_dict() -> None:
    """Optional fields may be missing from a peer's payload."""
    entry = VocabularyEntry.from_dict({
        "id": "abc",
        "word": "tea",
        "translation": "чай",
        "created_at": "2024-01-02T03:04:05+00:00",
        "updated_at": "2024-01-02T03:04:05+00:00",
        "scheduling": {"next_review_at": "2024-01-02T03:04:05+00:00"},
    })

    assert entry.tags == []
    assert entry.difficulty == 3
    assert entry.last_reviewed_at is None
    assert entry.scheduling.ease_factor == 2.5
    assert entry.scheduling.interval_days == 0
    assert entry.created_at == datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)


def test_entry_dict_round_trip(make_entry, now: datetime) -> None:
    entry = make_entry(tags=["a"], notes="note", last_reviewed_at=now, ease_factor=1.72)

    assert VocabularyEntry.from_dict(entry.to_dict()) == entry


def test_stats_to_dict() -> None:
    stats = ReconciliationStats(remote_added=2, conflicts=1, total_merged=7)

    assert stats.to_dict() == {
        "remote_added": 2,
        "local_added": 0,
        "local_overwritten": 0,
        "remote_overwritten": 0,
        "conflicts": 1,
        "total_merged": 7,
    }


def test_record_creation(db: Session, now: datetime) -> None:
    record = VocabularyRecord(
        profile_id="default",
        id="r1",
        word="hello",
        translation="привіт",
        created_at=now,
        updated_at=now,
        next_review_at=now,
    )
    db.add(record)
    db.add(SyncState(profile_id="default", last_sync_at=now))
    db.commit()
    db.refresh(record)

    assert record.interval_days == 0
    assert record.repetition_count == 0
    assert record.ease_factor == 2.5
    assert record.difficulty == 3
    assert record.tags == []
    assert db.get(SyncState, "default") is not None
