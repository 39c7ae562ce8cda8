"""Service for synchronizing vocabulary between replicas."""
import logging
import threading
from datetime import datetime, UTC
from typing import Optional

from vocabsync.config import SyncSettings, settings
from vocabsync.exceptions import (
    PersistenceError,
    ProfileMismatchError,
    SyncInProgressError,
)
from vocabsync.models.entities import (
    EPOCH,
    ReconciliationStats,
    RemoteSnapshot,
    SyncPayload,
    SyncProfile,
    ensure_utc,
)
from vocabsync.monitoring import merge_duration, sync_conflicts, sync_runs
from vocabsync.services.reconciler import merge
from vocabsync.services.vocabulary_store import VocabularyStore

logger = logging.getLogger(__name__)


def profile_from_settings(sync_settings: Optional[SyncSettings] = None) -> SyncProfile:
    """Build the local sync profile from configuration."""
    sync_settings = sync_settings or settings.sync
    return SyncProfile(
        profile_id=sync_settings.profile_id,
        profile_name=sync_settings.profile_name,
        source_language=sync_settings.source_language,
        target_language=sync_settings.target_language,
    )


class SyncService:
    """Runs merges against a vocabulary store and owns its checkpoint."""

    def __init__(self, store: VocabularyStore, profile: Optional[SyncProfile] = None):
        """Initialize the service with a store and the local profile."""
        self.store = store
        self.profile = profile or profile_from_settings()
        self._lock = threading.Lock()

    def is_syncing(self) -> bool:
        """Check whether a sync is currently running."""
        return self._lock.locked()

    def validate_profile(self, remote_profile: SyncProfile) -> None:
        """Raise ProfileMismatchError unless both profiles use the same languages."""
        if self.profile.source_language != remote_profile.source_language:
            raise ProfileMismatchError(
                f"Source language mismatch: local ({self.profile.source_language}) "
                f"vs remote ({remote_profile.source_language})",
                remote_profile.profile_id,
            )
        if self.profile.target_language != remote_profile.target_language:
            raise ProfileMismatchError(
                f"Target language mismatch: local ({self.profile.target_language}) "
                f"vs remote ({remote_profile.target_language})",
                remote_profile.profile_id,
            )

    def prepare_payload(self, now: Optional[datetime] = None) -> SyncPayload:
        """Collect the entries modified since the last sync for a peer."""
        now = ensure_utc(now) if now is not None else datetime.now(UTC)
        checkpoint = self.store.get_checkpoint()
        entries = [entry for entry in self.store.get_all() if entry.updated_at > checkpoint]
        logger.info("Prepared %d entries changed since %s", len(entries), checkpoint.isoformat())
        return SyncPayload(
            entries=entries,
            last_sync=checkpoint,
            produced_at=now,
            profile=self.profile,
        )

    def process_snapshot(self, snapshot: RemoteSnapshot) -> ReconciliationStats:
        """Merge a remote snapshot into the local store.

        The checkpoint only advances once the merged collection is stored, so a
        failed run can be retried with the same snapshot.
        """
        if not self._lock.acquire(blocking=False):
            sync_runs.labels(status="busy").inc()
            raise SyncInProgressError()

        try:
            if snapshot.profile is not None:
                try:
                    self.validate_profile(snapshot.profile)
                except ProfileMismatchError as e:
                    sync_runs.labels(status="rejected").inc()
                    logger.warning("Rejected snapshot from %s: %s", e.remote_profile_id, e.reason)
                    raise

            local_entries = self.store.get_all()
            checkpoint = self.store.get_checkpoint()

            with merge_duration.time():
                result = merge(local_entries, snapshot, checkpoint)

            try:
                self.store.replace_all(result.merged)
            except PersistenceError:
                sync_runs.labels(status="failed").inc()
                logger.error("Merged vocabulary not stored, checkpoint stays at %s", checkpoint)
                raise

            self.store.set_checkpoint(max(checkpoint, ensure_utc(snapshot.produced_at)))

            stats = result.stats
            sync_runs.labels(status="success").inc()
            sync_conflicts.inc(stats.conflicts)
            logger.info(
                "Sync complete: %d added from remote, %d updated from remote, "
                "%d conflicts, %d total",
                stats.remote_added,
                stats.local_overwritten,
                stats.conflicts,
                stats.total_merged,
            )
            return stats
        finally:
            self._lock.release()

    def reset(self) -> None:
        """Forget the checkpoint so the next sync exchanges everything."""
        self.store.set_checkpoint(EPOCH)
        logger.info("Sync state reset for profile %s", self.profile.profile_id)
