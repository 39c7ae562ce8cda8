"""Tests for the sync workflow and the SQL vocabulary store."""
import dataclasses
from datetime import datetime, timedelta
from typing import List, Sequence

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocabsync.exceptions import (
    PersistenceError,
    ProfileMismatchError,
    SyncInProgressError,
)
from vocabsync.models.entities import (
    EPOCH,
    RemoteSnapshot,
    SyncProfile,
    VocabularyEntry,
)
from vocabsync.services.sync_service import SyncService
from vocabsync.services.vocabulary_store import SqlVocabularyStore

PROFILE = SyncProfile(
    profile_id="laptop",
    profile_name="Laptop",
    source_language="en",
    target_language="uk",
)


class MemoryStore:
    """In-memory store that can be told to fail on write."""

    def __init__(self, entries: Sequence[VocabularyEntry] = (), checkpoint: datetime = EPOCH):
        self.entries: List[VocabularyEntry] = list(entries)
        self.checkpoint = checkpoint
        self.fail_writes = False
        self.fail_checkpoint = False

    def get_all(self) -> List[VocabularyEntry]:
        return list(self.entries)

    def replace_all(self, entries: Sequence[VocabularyEntry]) -> None:
        if self.fail_writes:
            raise PersistenceError("disk full")
        self.entries = list(entries)

    def get_checkpoint(self) -> datetime:
        return self.checkpoint

    def set_checkpoint(self, checkpoint: datetime) -> None:
        if self.fail_checkpoint:
            raise PersistenceError("checkpoint not written")
        self.checkpoint = checkpoint


@pytest.fixture
def store(db: Session) -> SqlVocabularyStore:
    """Create a SQL store for the test profile."""
    return SqlVocabularyStore(db, PROFILE.profile_id)


@pytest.fixture
def sync_service(store: SqlVocabularyStore) -> SyncService:
    """Create a sync service instance."""
    return SyncService(store, PROFILE)


def test_store_round_trip(store: SqlVocabularyStore, make_entry, now: datetime) -> None:
    entries = [
        make_entry(
            "b",
            tags=["food", "daily"],
            definitions=["a round fruit"],
            example_sentences=["An apple a day."],
            part_of_speech="noun",
            pronunciation="ˈæp.əl",
            last_reviewed_at=now - timedelta(hours=3),
            interval_days=6,
            repetition_count=2,
            ease_factor=2.36,
        ),
        make_entry("a"),
    ]

    store.replace_all(entries)

    assert store.get_all() == sorted(entries, key=lambda e: e.id)


def test_store_replace_all_removes_missing(store: SqlVocabularyStore, make_entry) -> None:
    store.replace_all([make_entry("a"), make_entry("b")])
    replacement = make_entry("b", translation="new")

    store.replace_all([replacement])

    assert store.get_all() == [replacement]


def test_store_keeps_profiles_apart(db: Session, make_entry, now: datetime) -> None:
    """Each profile reads and replaces only its own collection."""
    laptop = SqlVocabularyStore(db, "laptop")
    phone = SqlVocabularyStore(db, "phone")
    english = make_entry("en-word")
    german = make_entry("de-word")
    shared_laptop = make_entry("shared", translation="house")
    shared_phone = make_entry("shared", translation="Haus")

    laptop.replace_all([english, shared_laptop])
    phone.replace_all([german, shared_phone])

    assert laptop.get_all() == [english, shared_laptop]
    assert phone.get_all() == [german, shared_phone]
    assert laptop.count() == 2

    phone.replace_all([])

    assert laptop.get_all() == [english, shared_laptop]
    assert phone.count() == 0


def test_store_checkpoint(store: SqlVocabularyStore, db: Session, now: datetime) -> None:
    assert store.get_checkpoint() == EPOCH

    store.set_checkpoint(now)

    assert store.get_checkpoint() == now
    assert SqlVocabularyStore(db, "phone").get_checkpoint() == EPOCH


def test_store_write_failure_raises_persistence_error(
    store: SqlVocabularyStore, db: Session, make_entry, monkeypatch
) -> None:
    store.replace_all([make_entry("keep")])

    def broken_commit() -> None:
        raise SQLAlchemyError("database is locked")

    monkeypatch.setattr(db, "commit", broken_commit)

    with pytest.raises(PersistenceError):
        store.replace_all([make_entry("other")])

    monkeypatch.undo()
    assert [entry.id for entry in store.get_all()] == ["keep"]


def test_process_snapshot_merges_and_advances_checkpoint(
    sync_service: SyncService, store: SqlVocabularyStore, make_entry, now: datetime
) -> None:
    local = make_entry("local")
    store.replace_all([local])
    remote = make_entry("remote")

    stats = sync_service.process_snapshot(RemoteSnapshot([remote], produced_at=now, profile=PROFILE))

    assert stats.remote_added == 1
    assert stats.total_merged == 2
    assert store.get_all() == [local, remote]
    assert store.get_checkpoint() == now


def test_checkpoint_never_moves_backwards(
    sync_service: SyncService, store: SqlVocabularyStore, now: datetime
) -> None:
    store.set_checkpoint(now)

    sync_service.process_snapshot(RemoteSnapshot([], produced_at=now - timedelta(days=1)))

    assert store.get_checkpoint() == now


def test_failed_store_keeps_checkpoint(make_entry, now: datetime) -> None:
    """A failed write leaves the checkpoint alone so the same snapshot can be retried."""
    previous = now - timedelta(days=3)
    local = make_entry("local", created_at=now - timedelta(days=1))
    memory = MemoryStore([local], checkpoint=previous)
    service = SyncService(memory, PROFILE)
    snapshot = RemoteSnapshot([make_entry("remote")], produced_at=now)

    memory.fail_writes = True
    with pytest.raises(PersistenceError):
        service.process_snapshot(snapshot)

    assert memory.checkpoint == previous
    assert memory.entries == [local]
    assert not service.is_syncing()

    memory.fail_writes = False
    stats = service.process_snapshot(snapshot)

    assert stats.remote_added == 1
    assert stats.local_added == 1
    assert memory.checkpoint == now


def test_failed_checkpoint_write_keeps_previous_checkpoint(make_entry, now: datetime) -> None:
    """The merged collection may be stored while the checkpoint write fails."""
    previous = now - timedelta(days=3)
    memory = MemoryStore([make_entry("local")], checkpoint=previous)
    service = SyncService(memory, PROFILE)
    snapshot = RemoteSnapshot([make_entry("remote")], produced_at=now)

    memory.fail_checkpoint = True
    with pytest.raises(PersistenceError, match="checkpoint not written"):
        service.process_snapshot(snapshot)

    assert memory.checkpoint == previous
    assert [entry.id for entry in memory.entries] == ["local", "remote"]
    assert not service.is_syncing()

    memory.fail_checkpoint = False
    stats = service.process_snapshot(snapshot)

    assert stats.remote_added == 0
    assert stats.total_merged == 2
    assert memory.checkpoint == now


def test_profile_mismatch_rejected(
    sync_service: SyncService, store: SqlVocabularyStore, make_entry, now: datetime
) -> None:
    other = SyncProfile("tablet", "Tablet", source_language="en", target_language="de")

    with pytest.raises(ProfileMismatchError) as exc_info:
        sync_service.process_snapshot(RemoteSnapshot([make_entry()], produced_at=now, profile=other))

    assert "Target language mismatch" in str(exc_info.value)
    assert exc_info.value.remote_profile_id == "tablet"
    assert store.get_all() == []
    assert store.get_checkpoint() == EPOCH


def test_source_language_mismatch(sync_service: SyncService) -> None:
    with pytest.raises(ProfileMismatchError, match="Source language mismatch"):
        sync_service.validate_profile(SyncProfile("p", "P", "fr", "uk"))


def test_concurrent_sync_rejected(sync_service: SyncService, now: datetime) -> None:
    sync_service._lock.acquire()
    try:
        assert sync_service.is_syncing()
        with pytest.raises(SyncInProgressError):
            sync_service.process_snapshot(RemoteSnapshot([], produced_at=now))
    finally:
        sync_service._lock.release()


def test_prepare_payload_sends_changes_since_checkpoint(
    sync_service: SyncService, store: SqlVocabularyStore, make_entry, now: datetime
) -> None:
    checkpoint = now - timedelta(days=1)
    stale = make_entry("stale", updated_at=checkpoint - timedelta(hours=1))
    edited = make_entry("edited", updated_at=checkpoint + timedelta(hours=1))
    store.replace_all([stale, edited])
    store.set_checkpoint(checkpoint)

    payload = sync_service.prepare_payload(now)

    assert payload.entries == [edited]
    assert payload.last_sync == checkpoint
    assert payload.produced_at == now
    assert payload.profile == PROFILE


def test_payload_round_trips_as_snapshot(
    sync_service: SyncService, store: SqlVocabularyStore, make_entry, now: datetime
) -> None:
    store.replace_all([make_entry("x", tags=["t"]), make_entry("y")])

    payload = sync_service.prepare_payload(now)
    snapshot = RemoteSnapshot.from_dict(payload.to_dict())

    assert snapshot.entries == payload.entries
    assert snapshot.produced_at == now
    assert snapshot.profile == PROFILE


def test_two_replicas_converge(db: Session, make_entry, now: datetime) -> None:
    """Exchanging payloads both ways leaves both replicas with the same entries."""
    checkpoint = now - timedelta(days=1)
    shared = make_entry("shared", created_at=checkpoint - timedelta(days=5))
    laptop = MemoryStore(
        [
            shared,
            make_entry("laptop-word", created_at=checkpoint + timedelta(hours=1)),
        ],
        checkpoint=checkpoint,
    )
    phone = MemoryStore(
        [
            dataclasses.replace(shared, translation="edited", updated_at=now),
            make_entry("phone-word", created_at=checkpoint + timedelta(hours=2)),
        ],
        checkpoint=checkpoint,
    )
    laptop_sync = SyncService(laptop, PROFILE)
    phone_sync = SyncService(phone, PROFILE)

    outgoing = laptop_sync.prepare_payload(now)
    incoming = phone_sync.prepare_payload(now)
    laptop_sync.process_snapshot(RemoteSnapshot(incoming.entries, incoming.produced_at, incoming.profile))
    phone_sync.process_snapshot(RemoteSnapshot(outgoing.entries, outgoing.produced_at, outgoing.profile))

    assert laptop.entries == phone.entries
    assert [entry.id for entry in laptop.entries] == ["laptop-word", "phone-word", "shared"]
    assert laptop.entries[2].translation == "edited"


def test_reset(sync_service: SyncService, store: SqlVocabularyStore, now: datetime) -> None:
    store.set_checkpoint(now)

    sync_service.reset()

    assert store.get_checkpoint() == EPOCH
